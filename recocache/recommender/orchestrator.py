"""Request orchestration for cached recommendations.

For each request the orchestrator reads the catalog and the user's analytics
record, classifies the cached recommendations, and then either serves the
cache, retrains and writes through, or serves the cold-start fallback.
Nothing is written unless training succeeded, so a failed request never
disturbs the last good cache.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from recocache.config import (
    DEFAULT_FALLBACK_SIZE,
    DEFAULT_FETCH_WORKERS,
    DEFAULT_STALENESS_WINDOW_HOURS,
)
from recocache.exceptions import (
    RecoCacheException,
    TrainingError,
    UnexpectedError,
    UpsertError,
    UpstreamFetchError,
)
from recocache.recommender.fallback import fallback_recommendations
from recocache.recommender.lease import TrainingLease
from recocache.recommender.mapping import build_catalog_index, map_ids_to_products
from recocache.recommender.models import (
    ProductSummary,
    RecommendationResult,
    RecommendationSource,
    UserAnalyticsRecord,
)
from recocache.recommender.staleness import Staleness, classify
from recocache.recommender.train import Trainer
from recocache.storage.analytics import AnalyticsRepository
from recocache.storage.catalog import CatalogProvider

# Configure module logger
logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationOrchestrator:
    """Serves per-user recommendations from cache, retrain or fallback.

    Args:
        catalog_provider: Source of the active catalog snapshot.
        repository: Owner of per-user analytics records.
        trainer: Produces fresh recommendation ids for stale users.
        staleness_window: Maximum age of cached recommendations.
        fallback_size: Number of products in the cold-start list.
        min_actions_for_training: Users with fewer recorded actions get the
            cold-start list instead of a retrain. 0 disables the check.
        lease: Optional per-user lease that collapses concurrent retrains
            for the same user into one trainer call.
        clock: Returns the current time; injectable for tests.
        fetch_workers: Size of the pool running analytics reads. The catalog
            read runs on the calling thread.
    """

    def __init__(
        self,
        catalog_provider: CatalogProvider,
        repository: AnalyticsRepository,
        trainer: Trainer,
        staleness_window: timedelta = timedelta(hours=DEFAULT_STALENESS_WINDOW_HOURS),
        fallback_size: int = DEFAULT_FALLBACK_SIZE,
        min_actions_for_training: int = 0,
        lease: Optional[TrainingLease] = None,
        clock: Callable[[], datetime] = _utcnow,
        fetch_workers: int = DEFAULT_FETCH_WORKERS,
    ):
        self.catalog_provider = catalog_provider
        self.repository = repository
        self.trainer = trainer
        self.staleness_window = staleness_window
        self.fallback_size = fallback_size
        self.min_actions_for_training = min_actions_for_training
        self.lease = lease
        self.clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=fetch_workers, thread_name_prefix="recocache-fetch"
        )

    def get_recommendations(self, user_id: str) -> RecommendationResult:
        """Get recommendations for an authenticated user.

        Args:
            user_id: Verified user id supplied by the auth layer.

        Returns:
            A successful RecommendationResult, possibly with an empty list, or
            a failure result carrying only a generic error message. The
            specific error kind is logged and kept in ``error_kind``.
        """
        start_time = time.time()

        try:
            result = self._resolve(user_id)
        except RecoCacheException as e:
            self._log_failure(user_id, e, start_time)
            return RecommendationResult.failure(type(e).__name__)
        except Exception as e:
            error = UnexpectedError(user_id, e)
            self._log_failure(user_id, error, start_time, exc_info=e)
            return RecommendationResult.failure(type(error).__name__)

        logger.info(
            "Recommendations served",
            extra={
                "user_id": user_id,
                "source": result.source.value,
                "num_recommendations": len(result.recommendations),
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return result

    def _resolve(self, user_id: str) -> RecommendationResult:
        catalog, record = self._fetch_inputs(user_id)
        state = classify(record, self.clock(), self.staleness_window)

        if state is Staleness.ABSENT:
            return RecommendationResult.ok(
                fallback_recommendations(catalog, self.fallback_size),
                RecommendationSource.FALLBACK,
            )

        if self._lacks_history(record):
            logger.info(
                "Not enough history to train, serving cold start",
                extra={"user_id": user_id, "num_actions": len(record.actions)},
            )
            return RecommendationResult.ok(
                fallback_recommendations(catalog, self.fallback_size),
                RecommendationSource.FALLBACK,
            )

        catalog_index = build_catalog_index(catalog)

        if state is Staleness.FRESH:
            return RecommendationResult.ok(
                map_ids_to_products(record.recommendations, catalog_index),
                RecommendationSource.CACHE,
            )

        product_ids = self._refresh(user_id, catalog)
        return RecommendationResult.ok(
            map_ids_to_products(product_ids, catalog_index),
            RecommendationSource.RETRAIN,
        )

    def _fetch_inputs(
        self, user_id: str
    ) -> Tuple[List[ProductSummary], Optional[UserAnalyticsRecord]]:
        record_future = self._executor.submit(self.repository.get_by_user_id, user_id)

        try:
            catalog = list(self.catalog_provider.list_active_products())
        except Exception as e:
            record_future.cancel()
            raise UpstreamFetchError("catalog", e) from e

        try:
            record = record_future.result()
        except Exception as e:
            raise UpstreamFetchError("analytics", e) from e

        return catalog, record

    def _lacks_history(self, record: UserAnalyticsRecord) -> bool:
        return (
            self.min_actions_for_training > 0
            and len(record.actions) < self.min_actions_for_training
        )

    def _refresh(self, user_id: str, catalog: Sequence[ProductSummary]) -> List[str]:
        if self.lease is None:
            return self._train_and_store(user_id, catalog)
        return self.lease.run(user_id, lambda: self._train_and_store(user_id, catalog))

    def _train_and_store(self, user_id: str, catalog: Sequence[ProductSummary]) -> List[str]:
        try:
            product_ids = list(self.trainer.train(user_id, catalog))
        except Exception as e:
            raise TrainingError(user_id, e) from e

        trained_at = self.clock()
        try:
            self.repository.upsert_recommendations(user_id, product_ids, trained_at)
        except Exception as e:
            raise UpsertError(user_id, e) from e

        logger.info(
            "Retrained recommendations",
            extra={
                "user_id": user_id,
                "num_recommendations": len(product_ids),
                "trained_at": trained_at.isoformat(),
            },
        )
        return product_ids

    def _log_failure(
        self,
        user_id: str,
        error: RecoCacheException,
        start_time: float,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        logger.error(
            "Recommendation request failed",
            extra={
                "user_id": user_id,
                "error_kind": type(error).__name__,
                "error": error.message,
                "details": error.details,
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
            exc_info=exc_info or error,
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False)
