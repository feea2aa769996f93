"""Example script demonstrating how to use the zohopy library.

This script loads a credential profile, then lists or searches the records of
a CRM module (or a Books resource) with automatic pagination.

To run this example:
    python tools/example.py --module Leads --max-records 500 -v

Copyright (c) 2024 Felix Geilert
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from zohopy import PaginationOptions, ZohoClient, ZohoClientSync
from zohopy.exceptions import AuthenticationError, ConfigurationError, RateLimitError, ZohoException
from zohopy.utils import RetryConfig, call_with_retry


def configure_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    logging.getLogger("zohopy").setLevel(level)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)  # Always quiet for aiohttp


BASE_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "config.json")


def print_config_help(config_path: str) -> None:
    print(f"Config file not found: {config_path}")
    print("\nPlease create a config.json file with the following structure:")
    print(
        json.dumps(
            {
                "active_profile": "production",
                "profiles": {
                    "production": {
                        "client_id": "your_client_id",
                        "client_secret": "your_client_secret",
                        "refresh_token": "your_refresh_token",
                        "data_center": "com",
                        "organization_id": "optional_books_organization_id",
                    }
                },
            },
            indent=2,
        )
    )


def example_sync(args: argparse.Namespace) -> None:
    """Example using the synchronous wrapper."""
    print("=== Synchronous Example ===\n")

    client = ZohoClientSync.from_config(args.config, args.profile)
    options = PaginationOptions(max_records=args.max_records, per_page=args.per_page)

    if args.criteria:
        df = client.search_all_dataframe(args.module, args.criteria, options)
    else:
        df = client.list_all_dataframe(args.module, options)

    print(f"Fetched {len(df)} records from {args.module}")
    if not df.empty:
        columns = [c for c in ("id", "Full_Name", "Email", "Company") if c in df.columns]
        print(df[columns].head() if columns else df.head())


async def example_async(args: argparse.Namespace) -> None:
    """Example using the async client with an explicit retry around single pages."""
    print("\n=== Asynchronous Example ===\n")

    async with ZohoClient.from_config(args.config, args.profile) as zoho:
        options = PaginationOptions(max_records=args.max_records, per_page=args.per_page)

        result = await zoho.list_all(args.module, options)
        print(f"Fetched {len(result)} records ({result.total_pages} pages), more available: {result.has_more}")

        # A single page with a caller supplied retry policy
        page = await call_with_retry(
            zoho.crm.get_records,
            RetryConfig(max_attempts=3),
            args.module,
            {"per_page": 5},
        )
        for record in page.items:
            print(f"  {record.get('id')}: {record.get('Full_Name') or record.get('Account_Name') or ''}")


def main() -> None:
    """Main function to run the examples."""
    parser = argparse.ArgumentParser(description="zohopy example script - lists Zoho CRM records")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging output")
    parser.add_argument("--config", default=BASE_CONFIG_PATH, help="Path to config.json")
    parser.add_argument("--profile", default=None, help="Configuration profile to use")
    parser.add_argument("--module", default="Leads", help="CRM module or books/<resource>")
    parser.add_argument("--criteria", default=None, help="Search criteria, e.g. (Last_Name:equals:Smith)")
    parser.add_argument("--max-records", type=int, default=200, help="Maximum number of records to fetch")
    parser.add_argument("--per-page", type=int, default=None, help="Page size")
    parser.add_argument("--async-only", action="store_true", help="Run only the asynchronous example")
    args = parser.parse_args()

    configure_logging(args.verbose)

    if not os.path.exists(args.config):
        print_config_help(args.config)
        sys.exit(1)

    try:
        if not args.async_only:
            example_sync(args)
        asyncio.run(example_async(args))
    except ConfigurationError as e:
        print(f"Configuration problem: {e}")
        sys.exit(1)
    except AuthenticationError as e:
        print(f"Authentication failed: {e}")
        print("Your refresh token may have been revoked; generate a new one in the Zoho API console.")
        sys.exit(1)
    except RateLimitError as e:
        print(f"Rate limit reached, retry after {e.retry_after}s: {e}")
        sys.exit(1)
    except ZohoException as e:
        print(f"API error: {e}")
        sys.exit(1)
    finally:
        logging.shutdown()


if __name__ == "__main__":
    main()
