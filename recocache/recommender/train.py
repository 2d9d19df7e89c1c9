"""Collaborative filtering trainer.

This module provides the trainer the orchestrator calls when a user's cached
recommendations are stale. It factorizes the weighted user-product
interaction matrix of all users with Truncated SVD and ranks catalog
products for the requested user.
"""

import logging
import time
from typing import List, Protocol, Sequence

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.decomposition import TruncatedSVD

from recocache.config import DEFAULT_TOP_N
from recocache.recommender.models import ProductSummary
from recocache.recommender.utils import build_interaction_matrix, build_interactions_frame
from recocache.storage.analytics import AnalyticsRepository

# Configure module logger
logger = logging.getLogger(__name__)

# Model configuration constants
DEFAULT_N_COMPONENTS = 20
DEFAULT_N_ITERATIONS = 5
DEFAULT_RANDOM_STATE = 42


class Trainer(Protocol):
    """Produces a personalized, ordered list of product ids for a user."""

    def train(self, user_id: str, catalog: Sequence[ProductSummary]) -> List[str]:
        ...


def train_svd_model(
    user_product_matrix: csr_matrix,
    n_components: int = DEFAULT_N_COMPONENTS,
    n_iter: int = DEFAULT_N_ITERATIONS,
    random_state: int = DEFAULT_RANDOM_STATE,
) -> TruncatedSVD:
    """Train a Truncated SVD model for collaborative filtering.

    Args:
        user_product_matrix: Sparse matrix of user-product interactions.
        n_components: Number of latent features to extract. Must be less than
            min(n_users, n_products).
        n_iter: Number of iterations for randomized SVD solver.
        random_state: Random seed for reproducibility.

    Returns:
        Trained TruncatedSVD model.

    Raises:
        ValueError: If n_components is invalid or matrix is empty.
    """
    n_users, n_products = user_product_matrix.shape

    if n_components >= min(n_users, n_products):
        raise ValueError(
            f"n_components ({n_components}) must be less than "
            f"min(n_users, n_products) = {min(n_users, n_products)}"
        )

    if user_product_matrix.nnz == 0:
        raise ValueError("Cannot train on empty interaction matrix")

    model = TruncatedSVD(
        n_components=n_components,
        n_iter=n_iter,
        random_state=random_state,
    )
    model.fit(user_product_matrix)

    logger.debug(
        "SVD model fitted",
        extra={
            "n_components": n_components,
            "explained_variance": round(float(model.explained_variance_ratio_.sum()), 4),
        },
    )

    return model


class InteractionTrainer:
    """Trainer backed by the analytics repository.

    Every call rebuilds the interaction matrix from all users' histories, so
    a retrain always sees the latest recorded actions.
    """

    def __init__(
        self,
        repository: AnalyticsRepository,
        top_n: int = DEFAULT_TOP_N,
        n_components: int = DEFAULT_N_COMPONENTS,
        n_iter: int = DEFAULT_N_ITERATIONS,
        random_state: int = DEFAULT_RANDOM_STATE,
    ):
        self.repository = repository
        self.top_n = top_n
        self.n_components = n_components
        self.n_iter = n_iter
        self.random_state = random_state

    def train(self, user_id: str, catalog: Sequence[ProductSummary]) -> List[str]:
        """Rank catalog products for a user.

        Args:
            user_id: User to train recommendations for.
            catalog: Current catalog snapshot. Interactions with products
                outside it are ignored.

        Returns:
            Up to ``top_n`` product ids, best first. Empty if the user has no
            usable interactions.
        """
        start_time = time.time()
        catalog_ids = {product.id for product in catalog}

        interactions = build_interactions_frame(self.repository.list_records(), catalog_ids)
        if interactions.empty or user_id not in set(interactions["user_id"]):
            logger.info(
                "No usable interactions for user",
                extra={"user_id": user_id, "catalog_size": len(catalog_ids)},
            )
            return []

        matrix, user_id_to_idx, product_id_to_idx = build_interaction_matrix(interactions)
        scores = self._score_user(matrix, user_id_to_idx[user_id])

        idx_to_product_id = {idx: pid for pid, idx in product_id_to_idx.items()}
        ranked = sorted(
            idx_to_product_id,
            key=lambda idx: (-float(scores[idx]), idx_to_product_id[idx]),
        )
        recommended = [idx_to_product_id[idx] for idx in ranked[: self.top_n]]

        logger.info(
            "Training completed",
            extra={
                "user_id": user_id,
                "num_users": matrix.shape[0],
                "num_products": matrix.shape[1],
                "num_recommendations": len(recommended),
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )

        return recommended

    def _score_user(self, matrix: csr_matrix, user_idx: int) -> np.ndarray:
        n_users, n_products = matrix.shape
        max_components = min(n_users, n_products) - 1
        user_row = matrix[user_idx]

        if max_components < 1:
            # Too little data to factorize; rank by the user's own interactions
            logger.debug(
                "Matrix too small for SVD, using raw interaction weights",
                extra={"shape": [n_users, n_products]},
            )
            return user_row.toarray().ravel()

        model = train_svd_model(
            matrix,
            n_components=min(self.n_components, max_components),
            n_iter=self.n_iter,
            random_state=self.random_state,
        )
        user_latent = model.transform(user_row)[0]
        return np.dot(user_latent, model.components_)
