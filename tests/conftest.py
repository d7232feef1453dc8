"""
Pytest configuration and shared fixtures for restaurant-finder tests.

This module provides fixtures and test utilities that are shared across
the test suite, including service availability checks, mock data, and
test environment setup.
"""

import json
import os
import sys
from pathlib import Path
from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add the project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


# Service availability checks
def is_postgres_available() -> bool:
    """Check if PostgreSQL service is available."""
    try:
        import asyncio
        import asyncpg
        from config.db_config import POSTGRES_DSN

        async def check():
            try:
                conn = await asyncpg.connect(POSTGRES_DSN, timeout=3)
                await conn.close()
                return True
            except Exception:
                return False

        return asyncio.run(check())
    except Exception:
        return False


skip_if_no_postgres = pytest.mark.skipif(
    not is_postgres_available(),
    reason="PostgreSQL service not available"
)


# Mock data fixtures
@pytest.fixture
def restaurant_document() -> Dict:
    """Provides a canonical restaurant document as stored."""
    return {
        "id": "18382360",
        "name": "Cafe X",
        "cuisines": "Cafe, Italian, Desserts",
        "location": {
            "type": "Point",
            "coordinates": [12.5683, 55.6761],
            "address": "Nyhavn 17, Copenhagen",
            "city": "Copenhagen",
        },
        "average_cost_for_two": 400.0,
        "price_range": 2,
        "user_rating": {
            "aggregate_rating": 4.3,
            "rating_text": "Very Good",
            "votes": 512,
        },
        "featured_image": "https://images.example.com/cafe-x.jpg",
        "menu_url": "https://menus.example.com/cafe-x",
    }


@pytest.fixture
def restaurant_documents(restaurant_document) -> List[Dict]:
    """Provides several documents spread along one street."""
    documents = []
    for i in range(5):
        document = json.loads(json.dumps(restaurant_document))
        document["id"] = str(1000 + i)
        document["name"] = f"Cafe {i}"
        document["location"]["coordinates"] = [12.5683 + i * 0.001, 55.6761]
        documents.append(document)
    return documents


@pytest.fixture
def raw_dataset() -> List[Dict]:
    """Provides an import file payload in the source dataset's nested shape."""
    return [
        {
            "results_found": 3,
            "restaurants": [
                {
                    "restaurant": {
                        "id": "1",
                        "name": "Cafe X",
                        "location": {"longitude": "12.5", "latitude": "55.7"},
                    }
                },
                {
                    "restaurant": {
                        "id": 2,
                        "name": "Spice Route",
                        "cuisines": "North Indian, Mughlai",
                        "location": {
                            "longitude": "77.2090",
                            "latitude": "28.6139",
                            "address": "12 Market Road",
                            "city": "New Delhi",
                        },
                        "average_cost_for_two": 800,
                        "price_range": 3,
                        "user_rating": {
                            "aggregate_rating": "4.1",
                            "rating_text": "Very Good",
                            "votes": "1204",
                        },
                        "featured_image": "https://images.example.com/spice.jpg",
                        "menu_url": "https://menus.example.com/spice",
                    }
                },
                {"restaurant": {"id": "3", "name": "No Location Diner"}},
            ],
        },
        {"results_found": 0},
        {"restaurants": [{"not_a_restaurant": {}}]},
    ]


@pytest.fixture
def dataset_file(tmp_path, raw_dataset) -> str:
    path = tmp_path / "restaurants.json"
    path.write_text(json.dumps(raw_dataset), encoding="utf-8")
    return str(path)


@pytest.fixture
def mock_conn() -> AsyncMock:
    """Provides a mock asyncpg connection."""
    conn = AsyncMock()
    conn.transaction = MagicMock()
    conn.transaction.return_value.__aexit__.return_value = False
    return conn


@pytest.fixture
def mock_pool(mock_conn) -> MagicMock:
    """Provides a mock asyncpg pool whose acquire() yields ``mock_conn``."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = mock_conn
    pool.acquire.return_value.__aexit__.return_value = None
    pool.close = AsyncMock()
    return pool


# Environment setup fixtures
@pytest.fixture(autouse=True)
def reset_environment_vars():
    """Reset environment variables before each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Pytest hooks
def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require external services"
    )
    config.addinivalue_line(
        "markers", "postgres: Tests that require PostgreSQL with PostGIS"
    )
    config.addinivalue_line(
        "markers", "api: HTTP endpoint tests"
    )
    config.addinivalue_line(
        "markers", "database: Document store tests"
    )
    config.addinivalue_line(
        "markers", "ingest: Importer tests"
    )
    config.addinivalue_line(
        "markers", "config: Configuration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        if "postgres" in item.name.lower():
            item.add_marker(pytest.mark.postgres)
