#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging setup for the provisioning run.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

from stack_setup.config_models import SYMBOLS_DEFAULT

SIMPLE_LOG_FORMAT_WITH_PREFIX_PLACEHOLDER = "{log_prefix}%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"
SIMPLE_LOG_FORMAT_NO_PREFIX = (
    "%(asctime)s - %(levelname)s - %(symbol)s %(name)s - %(message)s"
)


class SymbolFormatter(logging.Formatter):
    """
    A formatter that adds a ``symbol`` attribute to each record based on
    its level.
    """

    LEVEL_SYMBOL_KEYS = {
        logging.DEBUG: ("debug", "🐛"),
        logging.INFO: ("info", "ℹ️"),
        logging.WARNING: ("warning", "⚠️"),
        logging.ERROR: ("error", "❌"),
        logging.CRITICAL: ("critical", "🔥"),
    }

    def __init__(
        self,
        fmt=None,
        datefmt=None,
        style="%",
        validate=True,
        symbols: Optional[Dict[str, str]] = None,
    ):
        super().__init__(fmt, datefmt, style, validate)
        self.symbols = symbols or SYMBOLS_DEFAULT

    def format(self, record):
        key, fallback = self.LEVEL_SYMBOL_KEYS.get(record.levelno, ("", ""))
        record.symbol = self.symbols.get(key, fallback) if key else ""
        return super().format(record)


def resolve_log_level(level: Union[int, str]) -> int:
    """Translate a level name such as "debug" into its numeric value."""
    if isinstance(level, int):
        return level
    numeric_level = getattr(logging, str(level).upper(), None)
    return numeric_level if isinstance(numeric_level, int) else logging.INFO


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    log_prefix: Optional[str] = None,
    symbols: Optional[Dict[str, str]] = None,
) -> None:
    """
    Configures the root logger for a provisioning run.

    Parameters:
    log_level: Union[int, str]
        Numeric level or level name. Unknown names fall back to INFO.
    log_file: Optional[str]
        Also append log records to this file. A file that cannot be opened
        produces a warning on stderr and is otherwise ignored.
    log_to_console: bool
        Whether to log to the console: ERROR and above to stderr, the rest
        to stdout.
    log_prefix: Optional[str]
        Prefix placed in front of every formatted record.
    symbols: Optional[Dict[str, str]]
        Level symbols, as configured in the application settings.
    """
    numeric_level = resolve_log_level(log_level)
    handlers: List[logging.Handler] = []
    if log_file:
        try:
            log_file_path = Path(log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file_path, mode="a"))
        except OSError as e:
            print(
                f"Warning: Could not create file handler for log file {log_file}: {e}",
                file=sys.stderr,
            )

    if log_to_console or not handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.addFilter(lambda record: record.levelno < logging.ERROR)
        error_handler = logging.StreamHandler(sys.stderr)
        error_handler.setLevel(logging.ERROR)
        handlers.extend([console_handler, error_handler])

    actual_prefix = (
        (log_prefix.strip() + " ")
        if log_prefix and log_prefix.strip()
        else ""
    )
    if actual_prefix:
        final_format_str = SIMPLE_LOG_FORMAT_WITH_PREFIX_PLACEHOLDER.format(
            log_prefix=actual_prefix
        )
    else:
        final_format_str = SIMPLE_LOG_FORMAT_NO_PREFIX

    formatter = SymbolFormatter(
        fmt=final_format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
        symbols=symbols,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging configured. Level: {logging.getLevelName(numeric_level)}."
    )
