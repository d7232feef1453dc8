"""
Test package for restaurant-finder project.

This package contains test suites for:
- Dataset import (flattening, defaults, coercion)
- Document store queries (PostgreSQL + PostGIS)
- HTTP API endpoints
- Image classifier client

Test categories:
- Unit tests: Fast tests with mocked dependencies
- Integration tests: Tests requiring a real PostgreSQL/PostGIS database

Run tests with:
    pytest                          # Run all tests
    pytest -m unit                  # Run only unit tests
    pytest -m integration           # Run only integration tests
    pytest tests/test_api.py        # Run specific test file
    pytest --cov=restaurant_finder  # Run with coverage report
"""

__version__ = "0.1.0"
