"""
Test suite for the checkout demo backend and checkout client.

Test categories (pytest markers):
- unit: pure functions and services against mocked providers
- api: routes through the ASGI app
- integration: checkout client → API → fake provider
"""
