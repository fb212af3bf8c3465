"""
Test Suite

This module contains all tests for the Visa Application Tracker backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # Pytest fixtures
    ├── unit/               # Engine, repository, storage and config tests
    └── integration/        # API endpoint tests

To run tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/
"""
