import json
import random
from pathlib import Path
from typing import Any, Dict, List, Tuple

SEED_COUNT = 200
ENTRY_SIZE = 20
OUTPUT_FILE = Path("file1.json")

# (city, longitude, latitude)
CITIES: List[Tuple[str, float, float]] = [
    ("New Delhi", 77.2090, 28.6139),
    ("Mumbai", 72.8777, 19.0760),
    ("Bangalore", 77.5946, 12.9716),
    ("Copenhagen", 12.5683, 55.6761),
    ("London", -0.1276, 51.5072),
    ("San Francisco", -122.4194, 37.7749),
    ("New York", -74.0060, 40.7128),
    ("Singapore", 103.8198, 1.3521),
    ("Sydney", 151.2093, -33.8688),
    ("Istanbul", 28.9784, 41.0082),
]

CUISINES: List[str] = [
    "North Indian", "South Indian", "Chinese", "Italian", "Pizza", "Burger",
    "Japanese", "Sushi", "Mexican", "Thai", "Cafe", "Desserts", "Bakery",
    "Seafood", "Street Food", "Biryani", "Mughlai", "Continental", "Turkish",
]

NAME_PREFIXES = ["The", "Little", "Golden", "Royal", "Urban", "Spice", "Blue", "Green"]
NAME_SUFFIXES = ["Kitchen", "Bistro", "House", "Diner", "Table", "Garden", "Corner", "Express"]
STREETS = ["Main Street", "Market Road", "Harbour Lane", "Station Road", "Park Avenue", "Hill View"]

RATING_TEXTS = [
    (4.5, "Excellent"),
    (4.0, "Very Good"),
    (3.5, "Good"),
    (2.5, "Average"),
    (0.0, "Poor"),
]


def rating_text(rating: float) -> str:
    for threshold, text in RATING_TEXTS:
        if rating >= threshold:
            return text
    return "Not rated"


def jitter(value: float, spread: float = 0.05) -> float:
    return round(value + random.uniform(-spread, spread), 6)


def build_restaurant(idx: int) -> Dict[str, Any]:
    city, longitude, latitude = random.choice(CITIES)
    rating = round(random.uniform(2.0, 4.9), 1)
    name = f"{random.choice(NAME_PREFIXES)} {random.choice(NAME_SUFFIXES)} {idx}"
    slug = name.lower().replace(" ", "-")

    restaurant: Dict[str, Any] = {
        "id": str(100000 + idx),
        "name": name,
        "cuisines": ", ".join(random.sample(CUISINES, k=random.randint(1, 3))),
        "location": {
            # Source data carries coordinates as strings
            "longitude": str(jitter(longitude)),
            "latitude": str(jitter(latitude)),
            "address": f"{random.randint(1, 250)} {random.choice(STREETS)}, {city}",
            "city": city,
        },
        "average_cost_for_two": random.choice([300, 500, 800, 1200, 1500, 2500]),
        "price_range": random.randint(1, 4),
        "user_rating": {
            "aggregate_rating": str(rating),
            "rating_text": rating_text(rating),
            "votes": str(random.randint(0, 5000)),
        },
        "featured_image": f"https://images.example.com/{slug}.jpg",
        "menu_url": f"https://menus.example.com/{slug}",
    }

    # A few sparse records to exercise the importer's defaults
    if idx % 17 == 0:
        for key in ("cuisines", "user_rating", "featured_image", "menu_url"):
            restaurant.pop(key)
    if idx % 29 == 0:
        restaurant["location"]["longitude"] = "n/a"

    return {"restaurant": restaurant}


def build_entries(count: int) -> List[Dict[str, Any]]:
    wrappers = [build_restaurant(idx) for idx in range(1, count + 1)]
    entries = []
    for start in range(0, len(wrappers), ENTRY_SIZE):
        entries.append({
            "results_found": count,
            "results_start": start,
            "results_shown": min(ENTRY_SIZE, count - start),
            "restaurants": wrappers[start:start + ENTRY_SIZE],
        })
    return entries


def main() -> None:
    entries = build_entries(SEED_COUNT)
    with OUTPUT_FILE.open("w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2)
    print(f"Wrote {SEED_COUNT} restaurants to {OUTPUT_FILE}")


if __name__ == "__main__":
    random.seed(42)
    main()
