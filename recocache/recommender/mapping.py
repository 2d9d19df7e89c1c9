"""Resolve recommended product ids against a catalog snapshot."""

from typing import Dict, Iterable, List, Sequence

from recocache.recommender.models import ProductSummary


def build_catalog_index(catalog: Sequence[ProductSummary]) -> Dict[str, ProductSummary]:
    """Index a catalog snapshot by product id."""
    return {product.id: product for product in catalog}


def map_ids_to_products(
    product_ids: Iterable[str],
    catalog_index: Dict[str, ProductSummary],
) -> List[ProductSummary]:
    """Look up product ids in the catalog, preserving their order.

    Ids missing from the catalog (deleted or unlisted products) are dropped
    silently. An empty result is valid.
    """
    return [
        catalog_index[product_id]
        for product_id in product_ids
        if product_id in catalog_index
    ]
