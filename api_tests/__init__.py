"""End-to-end tests for the authentication HTTP API.

Journey modules live in `api_tests.journeys` and run in the order declared
in `api_tests.suite_order`; state crosses process boundaries through the
credential store.
"""
