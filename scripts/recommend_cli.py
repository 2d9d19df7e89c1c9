"""CLI script for getting recommendations without the HTTP layer.

Runs the same orchestrator the API uses against a catalog CSV and an
analytics store, and prints which path served the request.
"""

import argparse
import logging
import sys

from recocache.api.dependencies import build_orchestrator
from recocache.config import Settings

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/recommend_cli.py user-7 --catalog data/catalog.csv --store data/analytics.joblib
  python scripts/recommend_cli.py user-7 --catalog data/catalog.csv --store data/analytics.joblib --window-hours 0.01
        """
    )

    parser.add_argument("user_id", type=str, help="User ID to get recommendations for")
    parser.add_argument("--catalog", required=True, help="Catalog CSV file")
    parser.add_argument("--store", required=True, help="Analytics joblib store")
    parser.add_argument(
        "--window-hours",
        type=float,
        default=None,
        help="Override the staleness window in hours",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    overrides = {"catalog_csv": args.catalog, "analytics_store": args.store}
    if args.window_hours is not None:
        overrides["staleness_window_hours"] = args.window_hours

    orchestrator = build_orchestrator(Settings(**overrides))
    try:
        result = orchestrator.get_recommendations(args.user_id)
    finally:
        orchestrator.close()

    if not result.success:
        print(f"Error: {result.error} ({result.error_kind})", file=sys.stderr)
        sys.exit(1)

    print(f"\nRecommendations for user {args.user_id} (source: {result.source.value}):")
    for product in result.recommendations:
        print(f"  {product.id:<10} {product.title:<30} {product.shop_name}")
    if not result.recommendations:
        print("  (none)")
    print()


if __name__ == "__main__":
    main()
