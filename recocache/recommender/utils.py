"""Utility functions for the interaction trainer.

This module turns raw analytics actions into weighted interactions and
builds the sparse user-product matrix the trainer factorizes.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from recocache.recommender.models import ActionEvent, ActionType, UserAnalyticsRecord

# Configure module logger
logger = logging.getLogger(__name__)

# Implicit feedback strength per interaction type
ACTION_WEIGHTS: Dict[ActionType, float] = {
    ActionType.VIEW: 0.1,
    ActionType.CART_ADD: 0.7,
    ActionType.WISHLIST: 0.5,
    ActionType.PURCHASE: 1.0,
}

# Upstream event names seen in exported analytics
ACTION_ALIASES: Dict[str, ActionType] = {
    "PRODUCT_VIEW": ActionType.VIEW,
    "VIEW": ActionType.VIEW,
    "ADD_TO_CART": ActionType.CART_ADD,
    "CART_ADD": ActionType.CART_ADD,
    "WISHLIST_ADD": ActionType.WISHLIST,
    "ADD_TO_WISHLIST": ActionType.WISHLIST,
    "WISHLIST": ActionType.WISHLIST,
    "PURCHASE": ActionType.PURCHASE,
}

INTERACTION_COLUMNS = ["user_id", "product_id", "weight"]


def normalize_action(action: Any) -> Optional[ActionType]:
    """Map an action value to an ActionType, or None if unrecognized.

    Accepts ActionType members, their values (``"product_view"``) and the
    upper-case event names (``"PRODUCT_VIEW"``, ``"WISHLIST_ADD"``).
    """
    if isinstance(action, ActionType):
        return action
    if not isinstance(action, str):
        return None
    try:
        return ActionType(action)
    except ValueError:
        return ACTION_ALIASES.get(action.upper())


def preprocess_actions(
    user_id: str,
    actions: Iterable[Any],
    catalog_ids: Optional[Set[str]] = None,
) -> List[Tuple[str, str, float]]:
    """Convert a user's raw actions into weighted interactions.

    Actions without a product id, with an unknown type, or pointing at a
    product outside ``catalog_ids`` are skipped. Duplicates are kept; they
    are summed when the matrix is built.

    Args:
        user_id: Owner of the actions.
        actions: ActionEvent objects or dicts with ``productId``/``product_id``
            and ``action``/``type``/``action_type`` keys.
        catalog_ids: Optional set of eligible product ids.

    Returns:
        List of (user_id, product_id, weight) tuples.
    """
    interactions = []

    for action in actions:
        if isinstance(action, ActionEvent):
            product_id, raw_type = action.product_id, action.action_type
        elif isinstance(action, dict):
            product_id = action.get("productId") or action.get("product_id")
            raw_type = (
                action.get("action") or action.get("type") or action.get("action_type")
            )
        else:
            continue

        if not product_id:
            continue
        if catalog_ids is not None and product_id not in catalog_ids:
            continue

        action_type = normalize_action(raw_type)
        if action_type is None:
            logger.debug(
                "Skipping unknown action type",
                extra={"user_id": user_id, "action": str(raw_type)},
            )
            continue

        interactions.append((user_id, str(product_id), ACTION_WEIGHTS[action_type]))

    return interactions


def build_interactions_frame(
    records: Iterable[UserAnalyticsRecord],
    catalog_ids: Optional[Set[str]] = None,
) -> pd.DataFrame:
    """Collect weighted interactions for every user into one DataFrame."""
    rows: List[Tuple[str, str, float]] = []
    for record in records:
        rows.extend(preprocess_actions(record.user_id, record.actions, catalog_ids))
    return pd.DataFrame(rows, columns=INTERACTION_COLUMNS)


def build_interaction_matrix(
    df: pd.DataFrame,
) -> Tuple[csr_matrix, Dict[str, int], Dict[str, int]]:
    """Build a sparse user-product matrix of summed interaction weights.

    Args:
        df: DataFrame with ``user_id``, ``product_id`` and ``weight`` columns.

    Returns:
        A tuple containing:
            - Sparse CSR matrix of shape (n_users, n_products)
            - Dictionary mapping user_id to matrix row index
            - Dictionary mapping product_id to matrix column index

    Raises:
        ValueError: If the DataFrame is empty or missing columns.
    """
    missing = set(INTERACTION_COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Interactions missing required columns: {missing}")

    if df.empty:
        raise ValueError("Cannot create matrix from empty interactions")

    summed = df.groupby(["user_id", "product_id"], as_index=False)["weight"].sum()

    unique_users = sorted(summed["user_id"].unique())
    unique_products = sorted(summed["product_id"].unique())

    user_id_to_idx = {user_id: idx for idx, user_id in enumerate(unique_users)}
    product_id_to_idx = {pid: idx for idx, pid in enumerate(unique_products)}

    row_indices = summed["user_id"].map(user_id_to_idx).values
    col_indices = summed["product_id"].map(product_id_to_idx).values
    data = summed["weight"].values.astype(np.float32)

    matrix = csr_matrix(
        (data, (row_indices, col_indices)),
        shape=(len(unique_users), len(unique_products)),
        dtype=np.float32,
    )
    matrix.eliminate_zeros()

    logger.debug(
        "Built interaction matrix",
        extra={
            "num_users": len(unique_users),
            "num_products": len(unique_products),
            "nnz": int(matrix.nnz),
        },
    )

    return matrix, user_id_to_idx, product_id_to_idx
