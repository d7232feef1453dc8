"""
Document store for restaurants.

Each restaurant is kept as a JSONB document next to the columns the API
queries on: the source identifier, the cuisine text and a PostGIS
geography point backed by a GiST index.
"""
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

import asyncpg
from loguru import logger

from config.db_config import POSTGRES_DSN


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS postgis;

CREATE TABLE IF NOT EXISTS restaurants (
    pk BIGSERIAL PRIMARY KEY,
    source_id TEXT,
    name TEXT,
    cuisines TEXT,
    location GEOGRAPHY(Point, 4326) NOT NULL,
    document JSONB NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_restaurants_source_id ON restaurants(source_id);
CREATE INDEX IF NOT EXISTS idx_restaurants_location ON restaurants USING GIST (location);
"""

TRUNCATE_SQL = "TRUNCATE restaurants RESTART IDENTITY"

INSERT_SQL = """
INSERT INTO restaurants (source_id, name, cuisines, location, document)
VALUES ($1, $2, $3, ST_SetSRID(ST_MakePoint($4, $5), 4326)::geography, $6::jsonb)
"""

# $1 = longitude, $2 = latitude, $3 = radius in metres
NEARBY_FILTER = "ST_DWithin(location, ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography, $3)"


async def create_pool(dsn: str = POSTGRES_DSN, min_size: int = 2, max_size: int = 10) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn,
        min_size=min_size,
        max_size=max_size,
        timeout=30,
        command_timeout=60
    )


async def create_tables(pool: asyncpg.Pool) -> None:
    """Create the PostGIS extension, the restaurants table and its indexes."""
    try:
        async with pool.acquire() as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Restaurant tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to create restaurant tables: {e}")
        raise


async def clear_restaurants(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute(TRUNCATE_SQL)
    logger.info("Restaurant collection cleared")


async def insert_restaurants(
    pool: asyncpg.Pool,
    documents: Sequence[Dict[str, Any]],
    replace: bool = False
) -> int:
    """
    Bulk insert normalized restaurant documents.

    Args:
        pool: PostgreSQL connection pool
        documents: Canonical restaurant documents
        replace: Truncate the collection first, in the same transaction,
            so a failed insert leaves the previous rows in place

    Returns:
        Number of documents written
    """
    records = [_document_to_record(doc) for doc in documents]
    async with pool.acquire() as conn:
        async with conn.transaction():
            if replace:
                await conn.execute(TRUNCATE_SQL)
            await conn.executemany(INSERT_SQL, records)
    logger.debug(f"Inserted {len(records)} restaurant documents")
    return len(records)


async def get_restaurant_by_id(pool: asyncpg.Pool, restaurant_id: str) -> Optional[Dict[str, Any]]:
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """SELECT document FROM restaurants
               WHERE source_id = $1
               ORDER BY pk
               LIMIT 1""",
            str(restaurant_id)
        )
    if not row:
        return None
    return _row_to_document(row)


async def count_restaurants(pool: asyncpg.Pool) -> int:
    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT count(*) FROM restaurants")


async def list_restaurants(pool: asyncpg.Pool, page: int, limit: int) -> List[Dict[str, Any]]:
    """Return one page of restaurants in insertion order (1-based page)."""
    offset = (page - 1) * limit
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """SELECT document FROM restaurants
               ORDER BY pk
               OFFSET $1 LIMIT $2""",
            offset, limit
        )
    return [_row_to_document(r) for r in rows]


async def find_nearby(
    pool: asyncpg.Pool,
    longitude: float,
    latitude: float,
    max_distance_m: float,
    max_results: int
) -> Tuple[int, List[Dict[str, Any]]]:
    """
    Find restaurants within ``max_distance_m`` metres of a point.

    Results are ordered nearest first using the GiST index's distance
    operator. The returned count covers every match, the list holds at
    most ``max_results`` of them.
    """
    async with pool.acquire() as conn:
        total = await conn.fetchval(
            f"SELECT count(*) FROM restaurants WHERE {NEARBY_FILTER}",
            longitude, latitude, max_distance_m
        )
        rows = await conn.fetch(
            f"""SELECT document FROM restaurants
                WHERE {NEARBY_FILTER}
                ORDER BY location <-> ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography
                LIMIT $4""",
            longitude, latitude, max_distance_m, max_results
        )
    return total, [_row_to_document(r) for r in rows]


async def search_by_cuisine(
    pool: asyncpg.Pool,
    label: str,
    max_results: int
) -> Tuple[int, List[Dict[str, Any]]]:
    """Case-insensitive literal substring match of ``label`` against cuisines."""
    pattern = f"%{escape_like(label)}%"
    async with pool.acquire() as conn:
        total = await conn.fetchval(
            r"SELECT count(*) FROM restaurants WHERE cuisines ILIKE $1 ESCAPE '\'",
            pattern
        )
        rows = await conn.fetch(
            r"""SELECT document FROM restaurants
                WHERE cuisines ILIKE $1 ESCAPE '\'
                ORDER BY pk
                LIMIT $2""",
            pattern, max_results
        )
    return total, [_row_to_document(r) for r in rows]


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _document_to_record(doc: Dict[str, Any]) -> tuple:
    longitude, latitude = doc["location"]["coordinates"]
    return (
        doc.get("id"),
        doc.get("name"),
        doc.get("cuisines"),
        float(longitude),
        float(latitude),
        json.dumps(doc),
    )


def _row_to_document(row: asyncpg.Record) -> Dict[str, Any]:
    document = row['document']
    if isinstance(document, str):
        return json.loads(document)
    return document
