"""Per-user single-flight lease for retraining.

Concurrent stale requests for the same user share one in-flight retrain:
the first caller runs it, later callers block on its outcome.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, TypeVar

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")


class TrainingLease:
    """Thread-safe map of user id to the in-flight retrain for that user."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Dict[str, Future] = {}

    def run(self, user_id: str, work: Callable[[], T]) -> T:
        """Run ``work`` for ``user_id`` unless a run is already in flight.

        Args:
            user_id: Key of the lease.
            work: Callable performing the retrain and its write.

        Returns:
            The result of ``work``, either from this call or from the
            concurrent call that held the lease.

        Raises:
            Exception: Whatever ``work`` raised, re-raised in every waiter.
        """
        with self._lock:
            future = self._in_flight.get(user_id)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[user_id] = future

        if not owner:
            logger.info(
                "Waiting for in-flight retrain",
                extra={"user_id": user_id},
            )
            return future.result()

        try:
            result = work()
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._in_flight.pop(user_id, None)

    def in_flight(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._in_flight
