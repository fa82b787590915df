"""
Unit Tests

Run in isolation: stores, Redis and the remote auth service are replaced
by the in-memory mock backend, mocks and httpx.MockTransport.
"""
