"""Shared fixtures and collaborator fakes for RecoCache tests."""

import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import pytest

from recocache.recommender.models import ProductSummary, UserAnalyticsRecord
from recocache.recommender.orchestrator import RecommendationOrchestrator
from recocache.storage.analytics import InMemoryAnalyticsRepository
from recocache.storage.catalog import InMemoryCatalogProvider

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_product(index: int) -> ProductSummary:
    """Product ``p<index>``; higher indexes are newer."""
    return ProductSummary(
        id=f"p{index}",
        title=f"Product {index}",
        shop_id="shop-1",
        shop_name="Test Shop",
        created_at=NOW - timedelta(days=100 - index),
    )


class FakeTrainer:
    """Trainer returning a fixed id list and recording its calls."""

    def __init__(self, result: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.result = list(result or [])
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def train(self, user_id: str, catalog: Sequence[ProductSummary]) -> List[str]:
        with self._lock:
            self.calls.append((user_id, list(catalog)))
        if self.error is not None:
            raise self.error
        return list(self.result)


class FailingCatalog:
    def list_active_products(self):
        raise ConnectionError("catalog unavailable")


class RecordingRepository(InMemoryAnalyticsRepository):
    """In-memory repository that counts upserts and can fail them."""

    def __init__(self, records=(), fail_upsert: bool = False):
        super().__init__(records)
        self.fail_upsert = fail_upsert
        self.upserts = []

    def upsert_recommendations(self, user_id, product_ids, trained_at):
        self.upserts.append((user_id, list(product_ids), trained_at))
        if self.fail_upsert:
            raise IOError("disk full")
        super().upsert_recommendations(user_id, product_ids, trained_at)


@pytest.fixture
def catalog() -> List[ProductSummary]:
    """Fifteen products, p1 oldest and p15 newest."""
    return [make_product(i) for i in range(1, 16)]


@pytest.fixture
def catalog_provider(catalog) -> InMemoryCatalogProvider:
    return InMemoryCatalogProvider(catalog)


def trained_record(user_id: str, ids: Sequence[str], age: Optional[timedelta]) -> UserAnalyticsRecord:
    return UserAnalyticsRecord(
        user_id=user_id,
        recommendations=tuple(ids),
        last_trained=None if age is None else NOW - age,
    )


def make_orchestrator(catalog_provider, repository, trainer, **kwargs) -> RecommendationOrchestrator:
    kwargs.setdefault("clock", lambda: NOW)
    return RecommendationOrchestrator(
        catalog_provider=catalog_provider,
        repository=repository,
        trainer=trainer,
        staleness_window=kwargs.pop("staleness_window", timedelta(hours=3)),
        **kwargs,
    )
