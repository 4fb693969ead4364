# main.py

"""Entry point for the pricematch command-line tool."""

import argparse
import asyncio
import logging
import sys

from pricematch.config.logging_config import setup_logging
from pricematch.config.settings import Settings

logger = logging.getLogger("pricematch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(p["id"] for p in Settings.AVAILABLE_PROVIDERS)

    parser = argparse.ArgumentParser(
        prog="pricematch",
        description="Compare one product's price across many stores.",
        epilog=f"Available providers: {valid_ids}",
    )
    parser.add_argument(
        "description",
        nargs="?",
        default=None,
        help="Product name or description to compare.",
    )
    parser.add_argument(
        "--expected",
        default=None,
        dest="expected_name",
        help="Exact product name to match offers against.",
    )
    parser.add_argument(
        "--category",
        default=None,
        dest="category_hint",
        help="Category hint such as 'tv' or 'phone'.",
    )
    parser.add_argument(
        "--barcode",
        default=None,
        help="UPC/EAN barcode to look up before searching by name.",
    )
    parser.add_argument(
        "-p",
        "--providers",
        default=None,
        help="Comma-separated provider IDs (default: all).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on all providers.",
    )
    parser.add_argument(
        "--purge-cache",
        action="store_true",
        default=False,
        dest="purge_cache",
        help="Delete expired entries from the result cache.",
    )
    return parser


def main() -> None:
    """Route to the health check, cache purge or a comparison."""
    log_file = setup_logging()
    logger.info("pricematch starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    from pricematch.cli import runner

    if args.health:
        exit_code = asyncio.run(runner.run_health_check())
    elif args.purge_cache:
        exit_code = runner.run_purge_cache()
    elif args.description is None:
        parser.print_help(sys.stderr)
        exit_code = 1
    else:
        exit_code = asyncio.run(
            runner.cli_compare(
                description=args.description,
                expected_name=args.expected_name,
                category_hint=args.category_hint,
                provider_csv=args.providers,
                output_format=args.output_format,
                barcode=args.barcode,
            )
        )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
