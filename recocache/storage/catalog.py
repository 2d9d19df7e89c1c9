"""Catalog providers.

A catalog provider returns a point-in-time snapshot of the products that are
eligible for recommendation.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Protocol

import pandas as pd

from recocache.recommender.models import ProductSummary

# Configure module logger
logger = logging.getLogger(__name__)

CATALOG_COLUMNS = ("id", "title", "shop_id", "shop_name", "created_at")


class CatalogProvider(Protocol):
    """Read-only source of active catalog products."""

    def list_active_products(self) -> List[ProductSummary]:
        ...


class InMemoryCatalogProvider:
    """Catalog held in process memory."""

    def __init__(self, products: Iterable[ProductSummary] = ()):
        self._products = list(products)

    def list_active_products(self) -> List[ProductSummary]:
        return list(self._products)

    def replace(self, products: Iterable[ProductSummary]) -> None:
        self._products = list(products)


class CsvCatalogProvider:
    """Catalog read from a CSV file on every call.

    The CSV must contain the columns ``id, title, shop_id, shop_name,
    created_at``. Reading on every call keeps the snapshot current when the
    file is replaced by an export job.
    """

    def __init__(self, csv_path: str):
        self.csv_path = csv_path

    def list_active_products(self) -> List[ProductSummary]:
        """Load the catalog snapshot.

        Raises:
            FileNotFoundError: If the CSV file does not exist.
            ValueError: If required columns are missing.
        """
        csv_file = Path(self.csv_path)
        if not csv_file.exists():
            raise FileNotFoundError(f"Catalog CSV not found: {self.csv_path}")

        df = pd.read_csv(csv_file, dtype={"id": str, "shop_id": str})

        missing = set(CATALOG_COLUMNS) - set(df.columns)
        if missing:
            raise ValueError(f"Catalog CSV missing required columns: {missing}")

        df = df.dropna(subset=["id"])
        df["created_at"] = pd.to_datetime(df["created_at"], utc=True, format="ISO8601")
        df["title"] = df["title"].fillna("").astype(str)
        df["shop_id"] = df["shop_id"].fillna("").astype(str)
        df["shop_name"] = df["shop_name"].fillna("").astype(str)

        products = [
            ProductSummary(
                id=row.id,
                title=row.title,
                shop_id=row.shop_id,
                shop_name=row.shop_name,
                created_at=_to_datetime(row.created_at),
            )
            for row in df[list(CATALOG_COLUMNS)].itertuples(index=False)
        ]

        logger.debug(
            "Loaded catalog snapshot",
            extra={"csv_path": self.csv_path, "num_products": len(products)},
        )

        return products


def _to_datetime(value: pd.Timestamp) -> datetime:
    return value.to_pydatetime()
