"""
Console entry point for the document demo (``cosmosdb-demo``).

    cosmosdb-demo               # run against the emulator from .env / environment
    cosmosdb-demo --no-wait     # do not wait for Enter before exiting
    cosmosdb-demo --debug       # DEBUG logging, including the azure SDK
"""

import argparse
import logging
import sys
import traceback
from typing import List, Optional

from ..config import CosmosDBConfig
from .driver import DocumentDemo

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cosmosdb-demo",
        description="Run the Cosmos DB document mapping demo against a Cosmos DB account or the local emulator."
    )
    parser.add_argument("--no-wait", action="store_true", help="exit without waiting for Enter")
    parser.add_argument("--debug", action="store_true", help="enable DEBUG logging")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    # The SDK logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(logging.DEBUG if debug else logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the demo and return the process exit code."""
    args = build_parser().parse_args(argv)

    exit_code = 0
    try:
        config = CosmosDBConfig.from_env()
        if args.debug:
            config.enable_debug_logging = True
        configure_logging(config.enable_debug_logging)

        print("Beginning Cosmos DB document demo...")
        DocumentDemo(config).run()
        print("Demo completed successfully!")
    except Exception as e:
        exit_code = 1
        print(f"Error: {e}")
        cause = e.__cause__ or getattr(e, 'original_error', None)
        if cause is not None:
            print(f"Inner exception: {cause}")
        print("Stack trace:")
        traceback.print_exc(file=sys.stdout)
    finally:
        if not args.no_wait and sys.stdin is not None and sys.stdin.isatty():
            input("Press Enter to exit...")

    return exit_code
