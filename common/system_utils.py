# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the provisioning run.

This module covers OS identification, systemd unit management,
update-alternatives and removal of residual files.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Iterable, Optional

from common.command_utils import (
    log_step,
    run_command,
    run_elevated_command,
    symbols_for,
)
from stack_setup.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def read_os_release(os_release_path: str) -> Dict[str, str]:
    """
    Parse an os-release file into a dictionary.

    Values are unquoted with shell rules; malformed lines are skipped.
    A missing file yields an empty dictionary.
    """
    path = Path(os_release_path)
    if not path.is_file():
        return {}

    values: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw_value = line.partition("=")
        try:
            parts = shlex.split(raw_value)
        except ValueError:
            continue
        values[key.strip()] = parts[0] if parts else ""
    return values


def get_os_codename(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Get the distribution codename (e.g. 'noble', 'bookworm').

    Only VERSION_CODENAME from the os-release file is trusted; when it is
    missing the caller treats the host as unidentified.
    """
    logger_to_use = current_logger if current_logger else module_logger
    codename = read_os_release(app_settings.os_release_path).get("VERSION_CODENAME")
    if not codename:
        log_step(
            f"{symbols_for(app_settings).get('warning', '!')} VERSION_CODENAME not found in {app_settings.os_release_path}.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    return codename


def enable_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Enable and start a systemd unit. Returns False on failure."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = symbols_for(app_settings)
    try:
        run_elevated_command(
            ["systemctl", "enable", "--now", service_name],
            app_settings,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        log_step(
            f"{symbols.get('error', '❌')} Failed to enable service '{service_name}': {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return False
    log_step(
        f"{symbols.get('success', '✅')} Service '{service_name}' enabled and started.",
        "success",
        logger_to_use,
        app_settings,
    )
    return True


def stop_and_disable_service(
    service_name: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Stop and disable a systemd unit. Best effort: failures are logged at
    debug level and otherwise ignored.
    """
    logger_to_use = current_logger if current_logger else module_logger
    for action in ("stop", "disable"):
        try:
            run_elevated_command(
                ["systemctl", action, service_name],
                app_settings,
                check=False,
                capture_output=True,
                current_logger=logger_to_use,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger_to_use.debug(
                f"Ignoring failure to {action} '{service_name}': {e}"
            )


def set_alternative(
    name: str,
    path: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Point the ``name`` alternative at ``path``.

    Raises:
        subprocess.CalledProcessError: If update-alternatives fails.
    """
    run_elevated_command(
        ["update-alternatives", "--set", name, path],
        app_settings,
        current_logger=current_logger,
    )


def remove_paths(
    paths: Iterable[str],
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Recursively delete each path in ``paths`` that exists."""
    existing = [p for p in paths if Path(p).exists() or Path(p).is_symlink()]
    if not existing:
        return
    run_elevated_command(
        ["rm", "-rf", "--", *existing],
        app_settings,
        current_logger=current_logger,
    )


def report_tool_version(
    command: Iterable[str],
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Log the first line printed by a ``--version`` style command.

    Best effort: any failure returns None without raising.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        result = run_command(
            list(command),
            app_settings,
            check=False,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    output = (result.stdout or result.stderr or "").strip()
    if result.returncode != 0 or not output:
        return None
    first_line = output.splitlines()[0]
    logger_to_use.info(f"Installed version: {first_line}")
    return first_line
