"""Generate a fake catalog and interaction history for local development.

Writes a catalog CSV and a joblib analytics store that the API can be
pointed at through ``RECOCACHE_CATALOG_CSV`` and
``RECOCACHE_ANALYTICS_STORE``.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_catalog
        df = generate_fake_catalog(num_products=200)
"""

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pandas as pd

from recocache.storage.analytics import JoblibAnalyticsRepository

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_SHOPS = 8
DEFAULT_NUM_ACTIONS = 2000
DEFAULT_DAYS_BACK = 90
SECONDS_PER_DAY = 86400

# Relative frequency of generated events
ACTION_MIX = {
    "product_view": 0.7,
    "add_to_wishlist": 0.1,
    "add_to_cart": 0.12,
    "purchase": 0.08,
}


def generate_fake_catalog(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    num_shops: int = DEFAULT_NUM_SHOPS,
    end_date: Optional[datetime] = None,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Returns:
        DataFrame with columns ``id, title, shop_id, shop_name, created_at``.

    Raises:
        ValueError: If num_products or num_shops is non-positive.
    """
    if num_products <= 0 or num_shops <= 0:
        raise ValueError("num_products and num_shops must be positive")

    end_date = end_date or datetime.now(timezone.utc)

    rows = []
    for i in range(1, num_products + 1):
        shop = random.randint(1, num_shops)
        created_at = end_date - timedelta(
            days=random.randrange(DEFAULT_DAYS_BACK),
            seconds=random.randrange(SECONDS_PER_DAY),
        )
        rows.append({
            "id": f"p{i}",
            "title": f"Product {i}",
            "shop_id": f"shop-{shop}",
            "shop_name": f"Shop {shop}",
            "created_at": created_at.isoformat(),
        })

    return pd.DataFrame(rows)


def populate_analytics(
    repository: JoblibAnalyticsRepository,
    catalog: pd.DataFrame,
    num_users: int = DEFAULT_NUM_USERS,
    num_actions: int = DEFAULT_NUM_ACTIONS,
) -> None:
    """Record random interactions for ``num_users`` users."""
    product_ids = catalog["id"].tolist()
    actions = list(ACTION_MIX)
    weights = list(ACTION_MIX.values())
    start = datetime.now(timezone.utc) - timedelta(days=DEFAULT_DAYS_BACK)

    for n in range(num_actions):
        repository.record_action(
            user_id=f"user-{random.randint(1, num_users)}",
            product_id=random.choice(product_ids),
            action=random.choices(actions, weights=weights)[0],
            timestamp=start + timedelta(minutes=n),
        )


def main() -> None:
    """Generate data into ./data and print a summary."""
    data_dir = Path(__file__).parent.parent / "data"
    data_dir.mkdir(exist_ok=True)

    print(f"Generating {DEFAULT_NUM_PRODUCTS} products...")
    catalog = generate_fake_catalog()
    catalog_path = data_dir / "catalog.csv"
    catalog.to_csv(catalog_path, index=False)

    store_path = data_dir / "analytics.joblib"
    if store_path.exists():
        store_path.unlink()

    print(f"Recording {DEFAULT_NUM_ACTIONS} actions for {DEFAULT_NUM_USERS} users...")
    repository = JoblibAnalyticsRepository(str(store_path))
    populate_analytics(repository, catalog)

    records = repository.list_records()
    print(f"\nData generated successfully!")
    print(f"  Catalog: {catalog_path}")
    print(f"  Analytics store: {store_path}")
    print(f"  Users with history: {len(records)}")
    print(f"  Stored actions: {sum(len(r.actions) for r in records)}")


if __name__ == "__main__":
    main()
