"""Recommendation endpoints for the RecoCache API.

This module exposes the orchestrator over HTTP. Any internal failure is
returned as one generic error body; the specific error kind only appears in
the server logs.
"""

import logging
import time
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from recocache.api.dependencies import get_current_user_id, get_orchestrator
from recocache.api.metrics import metrics_service
from recocache.exceptions import ForbiddenError
from recocache.recommender.models import ProductSummary
from recocache.recommender.orchestrator import RecommendationOrchestrator

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommendations",
    tags=["recommendations"],
)


class ProductSummaryResponse(BaseModel):
    """Product as returned to API callers."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    shop_id: str = Field(..., alias="shopId")
    shop_name: str = Field(..., alias="shopName")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_product(cls, product: ProductSummary) -> "ProductSummaryResponse":
        return cls(
            id=product.id,
            title=product.title,
            shop_id=product.shop_id,
            shop_name=product.shop_name,
            created_at=product.created_at,
        )


class RecommendationResponse(BaseModel):
    """Response model for recommendation requests.

    Attributes:
        success: Always True for a 200 response.
        recommendations: Recommended products, best first.
    """

    success: bool = Field(default=True)
    recommendations: List[ProductSummaryResponse] = Field(
        ..., description="Recommended products, best first"
    )


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


@router.get(
    "/{user_id}",
    response_model=RecommendationResponse,
    response_model_by_alias=True,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def get_recommendations(
    user_id: str,
    caller_id: str = Depends(get_current_user_id),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
):
    """Get product recommendations for a user.

    Serves the user's cached recommendations while they are fresh, retrains
    synchronously when they are stale, and falls back to the newest catalog
    products for users without analytics history. Callers may only read
    their own recommendations.

    Example:
        GET /recommendations/user-42
        Authorization: Bearer <token>
    """
    if caller_id != user_id:
        raise ForbiddenError(caller_id, user_id)

    start_time = time.time()
    logger.info(
        "Recommendation request",
        extra={"user_id": user_id, "caller_id": caller_id},
    )

    result = orchestrator.get_recommendations(user_id)
    latency_ms = (time.time() - start_time) * 1000

    if not result.success:
        metrics_service.record_request("failure", latency_ms)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error=result.error).model_dump(),
        )

    metrics_service.record_request(result.source.value, latency_ms)
    return RecommendationResponse(
        success=True,
        recommendations=[
            ProductSummaryResponse.from_product(product)
            for product in result.recommendations
        ],
    )
