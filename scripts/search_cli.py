"""CLI script for trying search and recommendations against CSV data.

Loads a catalog and behavior log (see generate_fake_data.py), runs one engine
operation and prints the ranked products.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shopsense.recommender.models import Product
from shopsense.service.config import EngineConfig
from shopsense.service.engine import RecommendationEngine
from shopsense.service.exceptions import ShopSenseException
from shopsense.service.logging_config import setup_logging
from shopsense.service.repository import InMemoryBehaviorLog, InMemoryProductRepository

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)


def format_product(rank: int, product: Product, score: Optional[float] = None) -> str:
    price = f"${product.price / 100:,.2f}"
    line = f"  {rank:>2}. [{product.id}] {product.title} - {price}, rating {product.rating:.1f}"
    if product.tags:
        line += f" ({', '.join(product.tags)})"
    if score is not None:
        line += f" score={score:.3f}"
    return line


async def run(args: argparse.Namespace) -> List[str]:
    """Run the requested operation and return the lines to print."""
    engine = RecommendationEngine(
        products=InMemoryProductRepository.from_csv(args.products),
        behaviors=InMemoryBehaviorLog.from_csv(args.behavior),
        config=EngineConfig.from_env(),
    )

    if args.command == "search":
        result = await engine.search_with_details(args.query, args.limit)
        parsed = result.parsed
        lines = [
            f"\nSearch: {args.query!r}",
            f"  Parsed: text={parsed.text!r} price_min={parsed.price_min} "
            f"price_max={parsed.price_max} sort_by={parsed.sort_by.value}",
        ]
        scores = result.scores if args.explain else [None] * len(result.results)
        products = list(zip(result.results, scores))
    elif args.command == "similar":
        lines = [f"\nProducts similar to {args.product_id}:"]
        products = [(p, None) for p in await engine.similar_to(args.product_id, args.limit)]
    elif args.command == "recommend":
        lines = [f"\nRecommendations for user {args.user_id or '(anonymous)'}:"]
        products = [(p, None) for p in await engine.recommend_for(args.user_id, args.limit)]
    else:
        lines = ["\nPopular products:"]
        products = [(p, None) for p in await engine.popular(args.limit)]

    if not products:
        lines.append("  (no results)")
    for rank, (product, score) in enumerate(products, start=1):
        lines.append(format_product(rank, product, score))
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Search and recommend products from CSV data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/search_cli.py search "bluetooth headphones under 600"
  python scripts/search_cli.py search "best rated keyboard" --explain
  python scripts/search_cli.py similar p0001 --limit 3
  python scripts/search_cli.py recommend u007
  python scripts/search_cli.py popular
        """
    )

    parser.add_argument(
        "--products",
        type=str,
        default="data/products.csv",
        help="Catalog CSV (default: data/products.csv)"
    )
    parser.add_argument(
        "--behavior",
        type=str,
        default="data/behavior.csv",
        help="Behavior log CSV (default: data/behavior.csv)"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON logs at INFO level"
    )

    # Shared by every subcommand so --limit can follow the operation
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of results (default: per-operation default)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", parents=[common], help="Free-text product search")
    search.add_argument("query", type=str, help="Search text")
    search.add_argument(
        "--explain",
        action="store_true",
        help="Show ranking scores"
    )

    similar = subparsers.add_parser("similar", parents=[common], help="Products similar to a product")
    similar.add_argument("product_id", type=str, help="Target product ID")

    recommend = subparsers.add_parser("recommend", parents=[common], help="Personalized recommendations")
    recommend.add_argument(
        "user_id",
        type=str,
        nargs="?",
        default=None,
        help="User ID (omit for anonymous)"
    )

    subparsers.add_parser("popular", parents=[common], help="Most purchased products")

    return parser


def main() -> None:
    """Main CLI function."""
    args = build_parser().parse_args()

    if args.json_logs:
        setup_logging("INFO", stream=sys.stderr)

    try:
        lines = asyncio.run(run(args))
    except ShopSenseException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print("\n".join(lines))
    print()


if __name__ == "__main__":
    main()
