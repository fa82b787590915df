"""
Aptivo Test Suite

Test Structure:
    tests/
    ├── conftest.py               # Shared fixtures (mock backend, Redis mock, clock)
    └── unit/
        ├── test_analytics.py     # Dashboard rollups
        ├── test_practice_session.py  # Session state machine
        ├── test_api.py           # Routers through TestClient
        └── ...

Running Tests:
    pytest backend/tests/ -v
"""
