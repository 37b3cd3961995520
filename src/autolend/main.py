"""
Autolend main entry point

- Parses command line arguments
- Builds the orchestrator (configuration, logger, exchange API, engine)
- Runs the autolend cycle on its interval until interrupted
"""

from __future__ import annotations

import argparse
from typing import NoReturn

from .modules.Orchestrator import BotOrchestrator


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parses command line arguments

    Command line arguments:
        -cfg, --config: Custom configuration file path
        -dry, --dryrun: Dry-run mode, does not send offers or conversions
        -v, --verbose: Debug output
    """
    parser = argparse.ArgumentParser(
        description="Autolend - Spot margin auto lending bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-cfg",
        "--config",
        help="Custom configuration file path (default: config.toml)",
        type=str,
        default=None,
    )

    parser.add_argument(
        "-dry",
        "--dryrun",
        help="Dry-run mode, does not send offers or conversions",
        action="store_true",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        help="Verbose output mode",
        action="store_true",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> NoReturn:
    args = parse_arguments(argv)

    orchestrator = BotOrchestrator(
        config_path=args.config or "config.toml",
        dry_run=bool(args.dryrun),
        verbose=bool(args.verbose),
    )
    orchestrator.initialize()
    orchestrator.run()
    raise SystemExit(0)


if __name__ == "__main__":
    main()
