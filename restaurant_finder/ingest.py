import argparse
import asyncio
import json
import math
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import asyncpg
from loguru import logger

from config.settings import settings
from restaurant_finder.db.postgres import create_pool, create_tables, insert_restaurants
from restaurant_finder.models.restaurant import Location, Restaurant, UserRating
from restaurant_finder.utils.log_setup import setup_logging


class DatasetError(Exception):
    """Raised when an import file cannot produce any restaurants."""


def parse_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return int(parse_float(value))


def _or_default(value: Any, default: Any) -> Any:
    # Empty strings, zero and null all take the default
    return value if value else default


def _text(value: Any, default: str) -> str:
    return str(value) if value else default


def load_dataset(file_path: str) -> List[Dict[str, Any]]:
    with open(file_path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except ValueError as e:
            raise DatasetError(f"Invalid JSON in {file_path}: {e}") from e
    if not isinstance(data, list) or not data:
        raise DatasetError("Invalid JSON structure: expected a non-empty array at the root")
    return data


def normalize_restaurant(raw: Dict[str, Any]) -> Restaurant:
    location = raw["location"]
    if not isinstance(location, dict):
        location = {}
    rating = raw.get("user_rating")
    if not isinstance(rating, dict):
        rating = {}
    source_id = raw.get("id")

    return Restaurant(
        id=str(source_id) if source_id else None,
        name=_text(raw.get("name"), "Unknown"),
        cuisines=_text(raw.get("cuisines"), "Not specified"),
        location=Location(
            coordinates=[
                parse_float(location.get("longitude")),
                parse_float(location.get("latitude")),
            ],
            address=_text(location.get("address"), "No address provided"),
            city=_text(location.get("city"), "Unknown"),
        ),
        average_cost_for_two=parse_float(raw.get("average_cost_for_two")),
        price_range=_or_default(parse_int(raw.get("price_range")), 1),
        user_rating=UserRating(
            aggregate_rating=parse_float(rating.get("aggregate_rating")),
            rating_text=_text(rating.get("rating_text"), "No Rating"),
            votes=parse_int(rating.get("votes")),
        ),
        featured_image=_text(raw.get("featured_image"), ""),
        menu_url=_text(raw.get("menu_url"), ""),
    )


def _has_location(value: Any) -> bool:
    # empty containers still count as present, only missing or blank scalars do not
    return isinstance(value, (dict, list)) or bool(value)


def extract_restaurants(entries: Sequence[Any]) -> List[Restaurant]:
    """Flatten ``entry.restaurants[*].restaurant`` into canonical documents."""
    restaurants: List[Restaurant] = []
    for entry in entries:
        wrappers = entry.get("restaurants") if isinstance(entry, dict) else None
        if not isinstance(wrappers, list):
            continue
        for wrapper in wrappers:
            raw = wrapper.get("restaurant") if isinstance(wrapper, dict) else None
            if not isinstance(raw, dict) or not _has_location(raw.get("location")):
                logger.warning(f"Skipping invalid restaurant entry: {wrapper}")
                continue
            restaurants.append(normalize_restaurant(raw))
    return restaurants


async def import_restaurants(file_path: str, pool: asyncpg.Pool, drop: bool = False) -> int:
    entries = load_dataset(file_path)
    restaurants = extract_restaurants(entries)
    if not restaurants:
        raise DatasetError("No valid restaurants found in the JSON file")

    await create_tables(pool)
    return await insert_restaurants(pool, [r.to_document() for r in restaurants], replace=drop)


async def run(file_path: str, drop: bool = False) -> int:
    pool = await create_pool(settings.postgres_dsn, min_size=1, max_size=2)
    try:
        return await import_restaurants(file_path, pool, drop=drop)
    finally:
        await pool.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Import a restaurant JSON dataset into PostgreSQL")
    parser.add_argument("file", nargs="?", default=settings.import_file, help="Path to the JSON dataset")
    parser.add_argument("--drop", action="store_true", help="Remove existing restaurants before importing")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    if not Path(args.file).exists():
        logger.error(f"Import file not found: {args.file}")
        return 1

    try:
        count = asyncio.run(run(args.file, drop=args.drop))
    except DatasetError as e:
        logger.error(str(e))
        return 1
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error(f"Import failed: {e}")
        return 1

    logger.info(f"Successfully imported {count} restaurants")
    return 0


if __name__ == "__main__":
    sys.exit(main())
