# stack_setup/main.py
# -*- coding: utf-8 -*-
"""
Main entry point for stack-setup.

Parses arguments, loads the configuration, sets up logging, checks for
root and hands a freshly wired run context to the orchestrator. The
process exit status is the orchestrator's: non-zero only when a mandatory
step failed.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from common.command_utils import log_step
from common.core_utils import setup_logging
from provisioning.orchestrator import ProvisioningOrchestrator
from provisioning.run_context import RunContext
from stack_setup.cli_handler import make_prompt, view_configuration
from stack_setup.config_loader import DEFAULT_CONFIG_FILE, load_app_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Provision a fresh Debian/Ubuntu host with a development and web-serving stack.",
        epilog="Example: sudo stack-setup --yes --components nginx php",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--view-config",
        action="store_true",
        help="View the effective configuration and exit.",
    )

    run_group = parser.add_argument_group("Run Options")
    run_group.add_argument(
        "-y",
        "--yes",
        dest="assume_yes",
        action="store_true",
        help="Answer every prompt with its default.",
    )
    run_group.add_argument(
        "--allow-non-root",
        action="store_true",
        help="Run without root; privileged commands are prefixed with sudo.",
    )
    run_group.add_argument(
        "--components",
        nargs="+",
        default=None,
        metavar="NAME",
        help="Components to offer, in order (default: all).",
    )

    config_group = parser.add_argument_group("Configuration Overrides")
    config_group.add_argument(
        "--php-fallback-version",
        default=None,
        help="PHP minor version installed when the newest one fails.",
    )
    config_group.add_argument(
        "--http-timeout",
        type=int,
        default=None,
        help="Timeout in seconds for HTTP requests.",
    )
    config_group.add_argument(
        "--policy-path",
        default=None,
        help="Location of the service-start policy override.",
    )

    log_group = parser.add_argument_group("Logging")
    log_group.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Console and file log level.",
    )
    log_group.add_argument(
        "--log-file", default=None, help="Also append the log to this file."
    )
    return parser


def main(args: Optional[List[str]] = None) -> int:
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    app_settings = load_app_settings(parsed_args, parsed_args.config)
    setup_logging(
        log_level=app_settings.log_level,
        log_file=app_settings.log_file,
        log_prefix=app_settings.log_prefix,
        symbols=app_settings.symbols,
    )
    symbols = app_settings.symbols

    if parsed_args.view_config:
        view_configuration(app_settings, logger)
        return 0

    if os.geteuid() != 0:
        if not app_settings.allow_non_root:
            log_step(
                f"{symbols.get('error', '❌')} This script must be run as root (or pass --allow-non-root).",
                "error",
                logger,
                app_settings,
            )
            return 1
        log_step(
            f"{symbols.get('info', 'ℹ️')} Not running as root; 'sudo' will be used for privileged commands.",
            "info",
            logger,
            app_settings,
        )

    log_step(
        f"{symbols.get('sparkles', '✨')} Starting stack-setup...",
        "info",
        logger,
        app_settings,
    )
    try:
        context = RunContext.create(
            app_settings, make_prompt(app_settings, logger), logger
        )
    except FileNotFoundError as e:
        log_step(
            f"{symbols.get('critical', '🔥')} {e}", "critical", logger, app_settings
        )
        return 1

    return ProvisioningOrchestrator(context, logger).run()


if __name__ == "__main__":
    sys.exit(main())
