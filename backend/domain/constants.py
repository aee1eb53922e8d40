"""
Domain constants used across services/routers.
"""

# Catalog fixtures (see services/setup_service.py)
ALLOWED_PRODUCT_IDS = frozenset({"iqos", "heets"})
EXPECTED_PRODUCT_COUNT = 2
HEETS_SKU_ID = "heets-mix"
DEVICE_SKU_PREFIX = "iqos-"

# Order statuses the poller treats as final
POLL_END_STATES = frozenset({"paid", "failed"})

# Order statuses that must never be charged again
ALREADY_CHARGED_STATES = frozenset({"pending", "paid", "captured"})

# Order statuses webhook events must not move
SETTLED_STATES = frozenset({"paid", "captured"})

# Business metadata defaults filled in by back-office tooling later
METADATA_PLACEHOLDER = "NA"
METADATA_DEFAULTS = {
    "AgeVerified": METADATA_PLACEHOLDER,
    "ReturnNumber": METADATA_PLACEHOLDER,
    "DispatchNumber": METADATA_PLACEHOLDER,
    "brochure": METADATA_PLACEHOLDER,
    "DeviceId": METADATA_PLACEHOLDER,
}

# Provider error codes / messages
ERROR_RESOURCE_MISSING = "resource_missing"
ERROR_RESOURCE_EXISTS = "resource_already_exists"
PRODUCT_EXISTS_MESSAGE = "Product already exists."

SMS_TEMPLATE = (
    "Hi {name}, this is to confirm we have received your order for an IQOS trial. "
    "We will do some age verification and send out your package ASAP. "
    "If you have any questions or want to follow up you can reach us on "
    "0208 xxxxx or tryiqos.uk@pmi.com. ~ Thanks Emma"
)
