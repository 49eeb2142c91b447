#!/usr/bin/env python3
"""
canary-ng - synthetic monitoring of data stores

Periodically connects to the configured data stores, reads and/or writes a
canary record, disconnects, and exposes durations and failures as
Prometheus metrics.

Usage:
    canary-ng --config canary-ng.yaml
    canary-ng --config canary-ng.yaml --verbose
    canary-ng --version
"""

import argparse
import logging
import platform
import sys

from prometheus_client import CollectorRegistry

from canary_ng import APP_NAME, __version__
from canary_ng.jobs import create_jobs, start_jobs
from canary_ng.monitoring import CanaryMetrics, serve_metrics
from canary_ng.utils.config import DEFAULT_CONFIG_FILE, load_config
from canary_ng.utils.errors import ConfigError
from canary_ng.utils.logging_setup import parse_log_level, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Synthetic monitoring of data stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="configuration file name")
    parser.add_argument("--quiet", action="store_true", help="quiet mode")
    parser.add_argument("--verbose", "-v", action="store_true", help="print more logs")
    parser.add_argument("--debug", action="store_true", help="print even more logs")
    parser.add_argument("--version", action="store_true", help="print version")
    return parser


def show_version() -> str:
    return f"{APP_NAME} version {__version__} (Python {platform.python_version()})"


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(show_version())
        return 0

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"could not create configuration: {e}")
        return 1

    try:
        level = parse_log_level(config.log_level, debug=args.debug, verbose=args.verbose, quiet=args.quiet)
        setup_logging(level, config.log_format)
    except ConfigError as e:
        print(e)
        return 1

    if not config.jobs:
        logger.error("no job configured")
        return 1

    registry = CollectorRegistry()
    try:
        metrics = CanaryMetrics(registry, config)
    except (ConfigError, ValueError) as e:
        logger.error(f"could not create metrics: {e}")
        return 1

    jobs = create_jobs(config, metrics)
    start_jobs(jobs)

    try:
        serve_metrics(registry, config.listen_addr, config.route)
    except (OSError, ValueError) as e:
        logger.error(f"could not listen and serve: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
