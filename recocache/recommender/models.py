"""Domain types shared by the recommendation core and its collaborators."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from recocache.exceptions import GENERIC_FAILURE_MESSAGE


class ActionType(str, Enum):
    """Kinds of user interaction recorded in analytics."""

    VIEW = "product_view"
    CART_ADD = "add_to_cart"
    WISHLIST = "add_to_wishlist"
    PURCHASE = "purchase"


@dataclass(frozen=True)
class ActionEvent:
    """A single recorded user interaction with a product."""

    product_id: str
    action_type: ActionType
    timestamp: datetime


@dataclass(frozen=True)
class UserAnalyticsRecord:
    """Per-user analytics row.

    Attributes:
        user_id: Unique user key.
        actions: Interaction log, oldest first.
        recommendations: Product ids persisted by the last successful retrain.
            May reference products that have since left the catalog.
        last_trained: When ``recommendations`` were produced, or None if the
            user was never trained.
    """

    user_id: str
    actions: Tuple[ActionEvent, ...] = ()
    recommendations: Tuple[str, ...] = ()
    last_trained: Optional[datetime] = None


@dataclass(frozen=True)
class ProductSummary:
    """Catalog product as exposed to recommendation callers."""

    id: str
    title: str
    shop_id: str
    shop_name: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "shopId": self.shop_id,
            "shopName": self.shop_name,
            "createdAt": self.created_at.isoformat(),
        }


class RecommendationSource(str, Enum):
    """Which path produced a successful result."""

    CACHE = "cache"
    RETRAIN = "retrain"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RecommendationResult:
    """Outcome of a single recommendation request. Never persisted."""

    success: bool
    recommendations: List[ProductSummary] = field(default_factory=list)
    source: Optional[RecommendationSource] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(
        cls, recommendations: List[ProductSummary], source: RecommendationSource
    ) -> "RecommendationResult":
        return cls(success=True, recommendations=list(recommendations), source=source)

    @classmethod
    def failure(cls, error_kind: str) -> "RecommendationResult":
        return cls(
            success=False,
            recommendations=[],
            error=GENERIC_FAILURE_MESSAGE,
            error_kind=error_kind,
        )
