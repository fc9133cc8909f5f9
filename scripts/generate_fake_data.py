"""Generate a fake product catalog and behavior log for development.

This module creates a synthetic electronics catalog and simulated
view/add-to-cart/purchase events, and writes both as CSV files readable by
`shopsense.recommender.utils`.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        catalog = generate_fake_catalog(num_products=50)
"""

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_EVENTS = 2000
DEFAULT_DAYS_BACK = 60
DEFAULT_RANDOM_SEED = 42
SECONDS_PER_DAY = 86400

# (noun, tags) pairs used to build product titles
PRODUCT_KINDS = [
    ("Headphones", ["headphones", "audio"]),
    ("Earbuds", ["earbuds", "audio"]),
    ("Speaker", ["speaker", "audio"]),
    ("Soundbar", ["soundbar", "audio", "home"]),
    ("Keyboard", ["keyboard", "accessories"]),
    ("Mouse", ["mouse", "accessories"]),
    ("Monitor", ["monitor", "display"]),
    ("Webcam", ["webcam", "video"]),
    ("Microphone", ["microphone", "audio"]),
    ("Office Chair", ["chair", "office", "ergonomic"]),
]

PRODUCT_ADJECTIVES = [
    ("Bluetooth", "bluetooth"),
    ("Wireless", "wireless"),
    ("Mechanical", "mechanical"),
    ("Ergonomic", "ergonomic"),
    ("Gaming", "gaming"),
    ("Portable", "portable"),
    ("Studio", "studio"),
    ("Compact", "compact"),
]

# Relative frequency of each action
ACTION_WEIGHTS = {"VIEW": 0.7, "ADD_TO_CART": 0.2, "PURCHASE": 0.1}


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    random_seed: int = DEFAULT_RANDOM_SEED,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Args:
        num_products: Number of products. Must be positive.
        random_seed: Random seed for reproducibility.

    Returns:
        A DataFrame with columns id, slug, title, description, price (cents),
        tags ("|"-separated), stock and rating.

    Raises:
        ValueError: If num_products is not positive.
    """
    if num_products <= 0:
        raise ValueError("num_products must be positive")

    rng = random.Random(random_seed)

    rows = []
    for number in range(1, num_products + 1):
        noun, kind_tags = rng.choice(PRODUCT_KINDS)
        adjective, adjective_tag = rng.choice(PRODUCT_ADJECTIVES)
        title = f"{adjective} {noun} {rng.choice(['Pro', 'Plus', 'Lite', 'Max', 'Mini'])}"
        tags = [adjective_tag] + kind_tags

        rows.append({
            "id": f"p{number:04d}",
            "slug": title.lower().replace(" ", "-") + f"-{number}",
            "title": title,
            "description": f"{adjective} {noun.lower()} for everyday use.",
            "price": rng.randrange(999, 250_000, 100),
            "tags": "|".join(tags),
            "stock": rng.randint(0, 200),
            "rating": round(rng.uniform(2.5, 5.0), 1),
        })

    return pd.DataFrame(rows)


def generate_fake_behavior(
    product_ids: list,
    num_users: int = DEFAULT_NUM_USERS,
    num_events: int = DEFAULT_NUM_EVENTS,
    end_date: Optional[datetime] = None,
    days_back: int = DEFAULT_DAYS_BACK,
    random_seed: int = DEFAULT_RANDOM_SEED,
) -> pd.DataFrame:
    """Generate synthetic behavior events over a date range.

    Args:
        product_ids: Products users interact with.
        num_users: Number of unique users. Must be positive.
        num_events: Number of events. Must be positive.
        end_date: Latest possible timestamp, now (UTC) when None.
        days_back: Length of the date range in days.
        random_seed: Random seed for reproducibility.

    Returns:
        A DataFrame with columns user_id, product_id, action and timestamp,
        sorted by timestamp ascending.

    Raises:
        ValueError: If any count is non-positive or product_ids is empty.
    """
    if num_users <= 0 or num_events <= 0 or days_back <= 0:
        raise ValueError("num_users, num_events and days_back must be positive")
    if not product_ids:
        raise ValueError("product_ids must not be empty")

    rng = random.Random(random_seed)
    if end_date is None:
        end_date = datetime.now(timezone.utc)
    start_date = end_date - timedelta(days=days_back)

    actions = list(ACTION_WEIGHTS)
    weights = list(ACTION_WEIGHTS.values())

    events = []
    for _ in range(num_events):
        offset = timedelta(
            days=rng.randrange(days_back), seconds=rng.randrange(SECONDS_PER_DAY)
        )
        events.append({
            "user_id": f"u{rng.randint(1, num_users):03d}",
            "product_id": rng.choice(product_ids),
            "action": rng.choices(actions, weights=weights)[0],
            "timestamp": (start_date + offset).isoformat(),
        })

    df = pd.DataFrame(events)
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def main() -> None:
    """Generate data/products.csv and data/behavior.csv with default parameters."""
    print(f"Generating {DEFAULT_NUM_PRODUCTS} products and {DEFAULT_NUM_EVENTS} events...")

    try:
        catalog = generate_fake_catalog()
        behavior = generate_fake_behavior(catalog["id"].tolist())
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    products_path = data_dir / "products.csv"
    behavior_path = data_dir / "behavior.csv"
    catalog.to_csv(products_path, index=False)
    behavior.to_csv(behavior_path, index=False)

    print(f"\nData generated successfully!")
    print(f"Saved to: {products_path} and {behavior_path}")
    print(f"\nCatalog preview:")
    print(catalog.head(5))
    print(f"\nData summary:")
    print(f"  Products: {len(catalog)}")
    print(f"  Events: {len(behavior)}")
    print(f"  Unique users: {behavior['user_id'].nunique()}")
    print(f"  Actions: {behavior['action'].value_counts().to_dict()}")


if __name__ == "__main__":
    main()
