"""Dependencies for the FastAPI application.

This module wires the orchestrator's collaborators from settings and
defines the authentication dependency that guards recommendation routes.
"""

import logging
from typing import Dict, Optional

from fastapi import Request

from recocache.config import Settings
from recocache.exceptions import AuthError
from recocache.recommender.lease import TrainingLease
from recocache.recommender.orchestrator import RecommendationOrchestrator
from recocache.recommender.train import InteractionTrainer
from recocache.storage.analytics import InMemoryAnalyticsRepository, JoblibAnalyticsRepository
from recocache.storage.catalog import CsvCatalogProvider, InMemoryCatalogProvider

logger = logging.getLogger(__name__)


class TokenAuthenticator:
    """Resolves bearer tokens to user ids."""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self._tokens = dict(tokens or {})

    def authenticate(self, authorization: Optional[str]) -> str:
        """Return the user id for an ``Authorization`` header value.

        Raises:
            AuthError: If the header is missing, malformed or unknown.
        """
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthError("Not authenticated")

        token = authorization.split(" ", 1)[1].strip()
        user_id = self._tokens.get(token)
        if user_id is None:
            raise AuthError("Invalid token")
        return user_id


def build_orchestrator(settings: Settings) -> RecommendationOrchestrator:
    """Create the orchestrator and its collaborators from settings."""
    if settings.catalog_csv:
        catalog_provider = CsvCatalogProvider(settings.catalog_csv)
    else:
        logger.warning("No catalog CSV configured, using an empty in-memory catalog")
        catalog_provider = InMemoryCatalogProvider()

    if settings.analytics_store:
        repository = JoblibAnalyticsRepository(settings.analytics_store)
    else:
        repository = InMemoryAnalyticsRepository()

    trainer = InteractionTrainer(
        repository,
        top_n=settings.top_n,
        n_components=settings.n_components,
        n_iter=settings.n_iter,
        random_state=settings.random_state,
    )

    return RecommendationOrchestrator(
        catalog_provider=catalog_provider,
        repository=repository,
        trainer=trainer,
        staleness_window=settings.staleness_window,
        fallback_size=settings.fallback_size,
        min_actions_for_training=settings.min_actions_for_training,
        lease=TrainingLease() if settings.single_flight_training else None,
        fetch_workers=settings.fetch_workers,
    )


def get_orchestrator(request: Request) -> RecommendationOrchestrator:
    return request.app.state.orchestrator


def get_current_user_id(request: Request) -> str:
    """Authenticate the caller from the ``Authorization`` header."""
    authenticator: TokenAuthenticator = request.app.state.authenticator
    return authenticator.authenticate(request.headers.get("Authorization"))
