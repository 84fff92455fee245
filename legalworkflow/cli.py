"""
Legal Workflow CLI - Command-line helpers for request turnaround and documents.

Commands:
    legalworkflow turnaround --created 2026-03-02 --days 3 [--target 2026-03-04]
    legalworkflow config [--file legalworkflow.yaml]
    legalworkflow documents ITEM_ID [--server URL] [--api-key KEY]
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import Optional

from . import __version__


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}' (expected YYYY-MM-DD)")


def _load_config(path: Optional[str]):
    from .config import WorkflowConfig
    from .exceptions import ConfigurationError

    try:
        if path:
            return WorkflowConfig.from_yaml(path)
        return WorkflowConfig.from_env()
    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        sys.exit(1)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def cmd_turnaround(args: argparse.Namespace) -> None:
    """Show the expected turnaround date and whether a target date is a rush."""
    from .business_calendar import calculate_rush, expected_turnaround_date

    if args.days <= 0:
        print("Error: --days must be positive", file=sys.stderr)
        sys.exit(1)

    expected = expected_turnaround_date(args.created, args.days)
    print(f"Created:           {args.created.isoformat()} ({args.created:%A})")
    print(f"Turnaround:        {args.days} business days")
    print(f"Expected by:       {expected.isoformat()} ({expected:%A})")

    if args.target:
        rush = calculate_rush(args.created, args.target, args.days)
        print(f"Target:            {args.target.isoformat()} ({args.target:%A})")
        print(f"Days available:    {rush.actual_days_available}")
        if rush.is_rush:
            print(f"Rush request:      yes ({rush.business_days_short} business days short)")
        else:
            print("Rush request:      no")


def cmd_config(args: argparse.Namespace) -> None:
    """Print the resolved configuration."""
    config = _load_config(args.file)
    for key, value in config.to_dict().items():
        print(f"{key:<28} {value}")


async def _list_documents(args: argparse.Namespace, config) -> int:
    from .client import AsyncLegalWorkflowClient
    from .documents import DocumentStagingEngine

    async with AsyncLegalWorkflowClient(
        base_url=args.server,
        api_key=args.api_key,
        timeout=config.timeout,
    ) as client:
        staging = DocumentStagingEngine(client, config)
        await staging.load(args.item_id)

        if staging.error:
            print(f"Error: {staging.error}", file=sys.stderr)
            return 1

        grouped = staging.get_documents_by_type()
        if not grouped:
            print(f"No documents for item {args.item_id}")
            return 0

        for document_type, documents in grouped.items():
            print(f"{document_type.value} ({len(documents)})")
            for document in documents:
                print(f"  {document.name:<50} {document.size:>10}")
        return 0


def cmd_documents(args: argparse.Namespace) -> None:
    """List the committed documents of a request item, grouped by type."""
    config = _load_config(args.config)
    args.server = args.server or config.store_url
    args.api_key = args.api_key or config.api_key
    if not args.server:
        print("Error: no server URL (use --server or LEGALWORKFLOW_STORE_URL)", file=sys.stderr)
        sys.exit(1)

    _configure_logging(config.log_level)
    code = asyncio.run(_list_documents(args, config))
    if code:
        sys.exit(code)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="legalworkflow",
        description="Legal Workflow CLI - Turnaround and document helpers",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Turnaround command
    turnaround_parser = subparsers.add_parser(
        "turnaround", help="Compute expected turnaround and rush status"
    )
    turnaround_parser.add_argument(
        "--created", "-c", type=_parse_date, required=True, help="Creation date (YYYY-MM-DD)"
    )
    turnaround_parser.add_argument(
        "--days", "-d", type=int, required=True, help="Turnaround in business days"
    )
    turnaround_parser.add_argument(
        "--target", "-t", type=_parse_date, help="Requested return date (YYYY-MM-DD)"
    )
    turnaround_parser.set_defaults(func=cmd_turnaround)

    # Config command
    config_parser = subparsers.add_parser("config", help="Show the resolved configuration")
    config_parser.add_argument("--file", "-f", help="YAML configuration file")
    config_parser.set_defaults(func=cmd_config)

    # Documents command
    documents_parser = subparsers.add_parser(
        "documents", help="List the documents of a request item"
    )
    documents_parser.add_argument("item_id", type=int, help="Request item id")
    documents_parser.add_argument(
        "--server",
        "-s",
        help="Store URL (default: LEGALWORKFLOW_STORE_URL)",
    )
    documents_parser.add_argument(
        "--api-key",
        "-k",
        help="API key for authentication (default: LEGALWORKFLOW_API_KEY)",
    )
    documents_parser.add_argument("--config", "-f", help="YAML configuration file")
    documents_parser.set_defaults(func=cmd_documents)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    args.func(args)


if __name__ == "__main__":
    main()
