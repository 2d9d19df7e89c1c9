"""Tests for the interaction trainer and its preprocessing helpers."""

from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest
from sklearn.decomposition import TruncatedSVD

from recocache.recommender.models import ActionEvent, ActionType, UserAnalyticsRecord
from recocache.recommender.train import InteractionTrainer, train_svd_model
from recocache.recommender.utils import (
    ACTION_WEIGHTS,
    build_interaction_matrix,
    build_interactions_frame,
    normalize_action,
    preprocess_actions,
)
from recocache.storage.analytics import InMemoryAnalyticsRepository

from tests.conftest import make_product

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def event(product_id, action_type=ActionType.VIEW):
    return ActionEvent(product_id, action_type, T0)


@pytest.fixture
def repository() -> InMemoryAnalyticsRepository:
    """Three users with overlapping tastes."""
    return InMemoryAnalyticsRepository([
        UserAnalyticsRecord(
            user_id="alice",
            actions=(
                event("p1", ActionType.PURCHASE),
                event("p2", ActionType.CART_ADD),
                event("p3"),
            ),
        ),
        UserAnalyticsRecord(
            user_id="bob",
            actions=(
                event("p1", ActionType.PURCHASE),
                event("p2", ActionType.PURCHASE),
                event("p4", ActionType.WISHLIST),
            ),
        ),
        UserAnalyticsRecord(
            user_id="carol",
            actions=(event("p5", ActionType.PURCHASE), event("p6", ActionType.CART_ADD)),
        ),
    ])


def test_normalize_action_accepts_known_spellings():
    assert normalize_action("PRODUCT_VIEW") is ActionType.VIEW
    assert normalize_action("product_view") is ActionType.VIEW
    assert normalize_action("ADD_TO_CART") is ActionType.CART_ADD
    assert normalize_action("WISHLIST_ADD") is ActionType.WISHLIST
    assert normalize_action("add_to_wishlist") is ActionType.WISHLIST
    assert normalize_action(ActionType.PURCHASE) is ActionType.PURCHASE
    assert normalize_action("UNKNOWN_TYPE") is None
    assert normalize_action(None) is None


def test_preprocess_actions_filters_and_weights():
    actions = [
        {"productId": "p1", "action": "PRODUCT_VIEW"},
        {"action": "PRODUCT_VIEW"},
        {"productId": None, "action": "PURCHASE"},
        {"productId": "p2", "type": "PURCHASE"},
        {"productId": "p3", "action": "UNKNOWN_TYPE"},
        event("p4", ActionType.CART_ADD),
        {"productId": "gone", "action": "PURCHASE"},
    ]

    result = preprocess_actions("user-42", actions, catalog_ids={"p1", "p2", "p3", "p4"})

    assert result == [
        ("user-42", "p1", ACTION_WEIGHTS[ActionType.VIEW]),
        ("user-42", "p2", ACTION_WEIGHTS[ActionType.PURCHASE]),
        ("user-42", "p4", ACTION_WEIGHTS[ActionType.CART_ADD]),
    ]


def test_preprocess_keeps_duplicates():
    actions = [event("p1"), event("p1"), event("p1", ActionType.PURCHASE)]

    assert len(preprocess_actions("u", actions)) == 3


def test_build_interaction_matrix_sums_weights():
    df = pd.DataFrame(
        [("u1", "p1", 0.1), ("u1", "p1", 1.0), ("u2", "p2", 0.5)],
        columns=["user_id", "product_id", "weight"],
    )

    matrix, user_map, product_map = build_interaction_matrix(df)

    assert matrix.shape == (2, 2)
    assert matrix[user_map["u1"], product_map["p1"]] == pytest.approx(1.1)
    assert matrix[user_map["u2"], product_map["p2"]] == pytest.approx(0.5)


def test_build_interaction_matrix_rejects_empty():
    with pytest.raises(ValueError, match="empty"):
        build_interaction_matrix(pd.DataFrame(columns=["user_id", "product_id", "weight"]))


def test_build_interactions_frame_restricts_to_catalog(repository):
    df = build_interactions_frame(repository.list_records(), catalog_ids={"p1", "p2"})

    assert set(df["product_id"]) == {"p1", "p2"}
    assert set(df["user_id"]) == {"alice", "bob"}


def test_train_svd_model_validates_components():
    df = pd.DataFrame(
        [("u1", "p1", 1.0), ("u2", "p2", 1.0), ("u3", "p3", 1.0)],
        columns=["user_id", "product_id", "weight"],
    )
    matrix, _, _ = build_interaction_matrix(df)

    with pytest.raises(ValueError, match="n_components"):
        train_svd_model(matrix, n_components=3)

    assert isinstance(train_svd_model(matrix, n_components=2), TruncatedSVD)


def test_trainer_returns_ranked_catalog_ids(repository):
    catalog = [make_product(i) for i in range(1, 8)]
    trainer = InteractionTrainer(repository, top_n=3)

    result = trainer.train("alice", catalog)

    assert len(result) == 3
    assert len(set(result)) == 3
    assert set(result) <= {p.id for p in catalog}


def test_trainer_is_deterministic(repository):
    catalog = [make_product(i) for i in range(1, 8)]
    trainer = InteractionTrainer(repository, top_n=5)

    assert trainer.train("bob", catalog) == trainer.train("bob", catalog)


def test_trainer_ignores_products_outside_catalog(repository):
    catalog = [make_product(1), make_product(3)]
    trainer = InteractionTrainer(repository)

    result = trainer.train("alice", catalog)

    assert set(result) <= {"p1", "p3"}


def test_trainer_without_history_returns_empty(repository):
    catalog = [make_product(i) for i in range(1, 8)]

    assert InteractionTrainer(repository).train("stranger", catalog) == []


def test_single_user_ranks_by_own_interactions():
    repo = InMemoryAnalyticsRepository([
        UserAnalyticsRecord(
            user_id="solo",
            actions=(event("p1"), event("p2", ActionType.PURCHASE), event("p3", ActionType.CART_ADD)),
        )
    ])
    catalog = [make_product(i) for i in range(1, 4)]

    result = InteractionTrainer(repo).train("solo", catalog)

    assert result == ["p2", "p3", "p1"]


def test_scores_are_finite(repository):
    catalog = [make_product(i) for i in range(1, 8)]
    trainer = InteractionTrainer(repository)
    df = build_interactions_frame(repository.list_records(), {p.id for p in catalog})
    matrix, user_map, _ = build_interaction_matrix(df)

    scores = trainer._score_user(matrix, user_map["carol"])

    assert np.all(np.isfinite(scores))
