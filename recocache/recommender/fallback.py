"""Cold-start recommendations for users without analytics history."""

import logging
from typing import List, Sequence

from recocache.config import DEFAULT_FALLBACK_SIZE
from recocache.recommender.models import ProductSummary
from recocache.recommender.staleness import as_utc

# Configure module logger
logger = logging.getLogger(__name__)


def fallback_recommendations(
    catalog: Sequence[ProductSummary],
    n: int = DEFAULT_FALLBACK_SIZE,
) -> List[ProductSummary]:
    """Return the newest products in the catalog, most recent first.

    Naive creation times are read as UTC. Products created at the same
    instant keep their catalog order. If the catalog holds fewer than ``n``
    products, all of them are returned.

    Args:
        catalog: Current catalog snapshot.
        n: Number of products to return.

    Returns:
        Up to ``n`` products ordered by descending creation time.
    """
    if n <= 0:
        return []

    newest = sorted(catalog, key=lambda product: as_utc(product.created_at), reverse=True)
    selected = newest[:n]

    logger.debug(
        "Cold start recommendations",
        extra={"catalog_size": len(catalog), "num_recommendations": len(selected)},
    )

    return selected
