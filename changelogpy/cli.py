"""Command-line interface: ``changelog [-r REPO] [-o OUTPUT] [-u URL] [-f PATH ...]``."""

import argparse
import logging
import sys
from typing import List, Optional

from core.config import load_config
from core.errors import ChangelogError
from core.generator import ChangelogGenerator
from utils.logging import setup_logging
from utils.otel import init_tracing, shutdown_tracing

from . import __version__

logger = logging.getLogger("changelog.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="changelog",
        description="Generate a versioned CHANGELOG.md from conventional commits",
    )
    parser.add_argument(
        "-r", "--repo",
        default=None,
        help="Path to git repository (default: .)"
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output changelog file path (default: CHANGELOG.md)"
    )
    parser.add_argument(
        "-u", "--url",
        default=None,
        help="Remote repository URL (e.g., https://github.com/org/repo)"
    )
    parser.add_argument(
        "-f", "--follow",
        nargs="*",
        action="extend",
        default=None,
        metavar="PATH",
        help="Paths to filter commits by; one section per path"
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="JSON config file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resulting changelog instead of writing it"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    # Log config errors with whatever verbosity was asked for on the command line
    setup_logging(verbose=args.verbose)

    try:
        config = load_config(
            config_file=args.config,
            repo=args.repo,
            output=args.output,
            url=args.url,
            follow=args.follow,
            verbose=True if args.verbose else None,
        )
        if config.verbose:
            setup_logging(verbose=True)

        init_tracing()
        try:
            result = ChangelogGenerator(config).generate(dry_run=args.dry_run)
        finally:
            shutdown_tracing()
    except ChangelogError as e:
        logger.error(f"Failed to generate changelog: {e}")
        return e.exit_code
    except Exception as e:
        logger.error(f"Failed to generate changelog: {e}")
        logger.debug("Unexpected error", exc_info=True)
        return 1

    if args.dry_run:
        sys.stdout.write(result.content or "")
    elif result.new_sections:
        logger.info(
            f"Added {result.new_entry_count} entries in {', '.join(result.new_sections)}"
        )
    else:
        logger.info("No new entries")
    return 0


if __name__ == "__main__":
    sys.exit(main())
