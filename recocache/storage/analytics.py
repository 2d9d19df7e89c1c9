"""Analytics repositories.

The repository owns ``UserAnalyticsRecord`` storage. The orchestrator only
reads whole records and writes recommendations through
``upsert_recommendations``, which replaces the id list and the training
timestamp together.
"""

import logging
import os
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import joblib

from recocache.recommender.models import ActionEvent, ActionType, UserAnalyticsRecord

# Configure module logger
logger = logging.getLogger(__name__)

# Only the most recent actions are kept per user
MAX_ACTIONS_PER_USER = 100

REMOVE_FROM_CART = "remove_from_cart"
REMOVE_FROM_WISHLIST = "remove_from_wishlist"

_REMOVALS = {
    REMOVE_FROM_CART: ActionType.CART_ADD,
    REMOVE_FROM_WISHLIST: ActionType.WISHLIST,
}


class AnalyticsRepository(Protocol):
    """Storage of per-user analytics records."""

    def get_by_user_id(self, user_id: str) -> Optional[UserAnalyticsRecord]:
        ...

    def upsert_recommendations(
        self, user_id: str, product_ids: Sequence[str], trained_at: datetime
    ) -> None:
        ...

    def list_records(self) -> List[UserAnalyticsRecord]:
        ...


class InMemoryAnalyticsRepository:
    """Thread-safe analytics store held in process memory.

    Records are immutable; every mutation swaps in a new record under the
    lock, so readers never observe a partially written record.
    """

    def __init__(self, records: Iterable[UserAnalyticsRecord] = ()):
        self._lock = threading.RLock()
        self._records: Dict[str, UserAnalyticsRecord] = {
            record.user_id: record for record in records
        }

    def get_by_user_id(self, user_id: str) -> Optional[UserAnalyticsRecord]:
        with self._lock:
            return self._records.get(user_id)

    def list_records(self) -> List[UserAnalyticsRecord]:
        with self._lock:
            return list(self._records.values())

    def upsert_recommendations(
        self, user_id: str, product_ids: Sequence[str], trained_at: datetime
    ) -> None:
        """Store a freshly trained recommendation list for a user.

        Creates the record if the user has none yet.

        Args:
            user_id: User the recommendations belong to.
            product_ids: Ordered product ids from the trainer.
            trained_at: Training time, stored as ``last_trained``.
        """
        with self._lock:
            current = self._records.get(user_id) or UserAnalyticsRecord(user_id=user_id)
            updated = replace(
                current,
                recommendations=tuple(product_ids),
                last_trained=trained_at,
            )
            self._commit({**self._records, user_id: updated})

        logger.info(
            "Stored recommendations",
            extra={"user_id": user_id, "num_recommendations": len(product_ids)},
        )

    def record_action(
        self,
        user_id: str,
        product_id: str,
        action: str,
        timestamp: Optional[datetime] = None,
    ) -> UserAnalyticsRecord:
        """Append an interaction event to a user's history.

        Views and purchases are always appended. Cart and wishlist adds are
        appended once per product. ``remove_from_cart`` and
        ``remove_from_wishlist`` drop the matching adds. Only the last
        ``MAX_ACTIONS_PER_USER`` actions are kept.

        Raises:
            ValueError: If the action name is unknown or product_id is empty.
        """
        if not product_id:
            raise ValueError("product_id is required")

        timestamp = timestamp or datetime.now(timezone.utc)

        with self._lock:
            current = self._records.get(user_id) or UserAnalyticsRecord(user_id=user_id)
            actions = list(current.actions)

            if action in _REMOVALS:
                removed_type = _REMOVALS[action]
                actions = [
                    event
                    for event in actions
                    if not (
                        event.product_id == product_id
                        and event.action_type is removed_type
                    )
                ]
            else:
                try:
                    action_type = ActionType(action)
                except ValueError:
                    raise ValueError(f"Unknown action: {action}") from None

                exists = any(
                    event.product_id == product_id and event.action_type is action_type
                    for event in actions
                )
                once_only = action_type in (ActionType.CART_ADD, ActionType.WISHLIST)
                if not (once_only and exists):
                    actions.append(ActionEvent(product_id, action_type, timestamp))

            actions = actions[-MAX_ACTIONS_PER_USER:]
            updated = replace(current, actions=tuple(actions))
            self._commit({**self._records, user_id: updated})

        return updated

    def _commit(self, records: Dict[str, UserAnalyticsRecord]) -> None:
        self._records = records


class JoblibAnalyticsRepository(InMemoryAnalyticsRepository):
    """Analytics store persisted to a joblib file.

    Each mutation writes a complete snapshot to a temporary file and renames
    it over the store, so a failed write leaves both the file and the
    in-memory view unchanged.
    """

    def __init__(self, store_path: str):
        self.store_path = Path(store_path)
        records: Iterable[UserAnalyticsRecord] = ()

        if self.store_path.exists():
            logger.info(f"Loading analytics store from {self.store_path}")
            records = joblib.load(self.store_path).values()

        super().__init__(records)

    def _commit(self, records: Dict[str, UserAnalyticsRecord]) -> None:
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.store_path.with_name(self.store_path.name + ".tmp")

        try:
            joblib.dump(records, tmp_path)
            os.replace(tmp_path, self.store_path)
        except Exception:
            logger.error(
                "Failed to persist analytics store",
                extra={"store_path": str(self.store_path)},
                exc_info=True,
            )
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        super()._commit(records)
