# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from stack_setup.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


def symbols_for(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the log symbols of ``app_settings``, or the defaults."""
    if app_settings is not None and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_step(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a provisioning message at a named level.

    Args:
        message (str): The log message to be recorded.
        level (str): "debug", "info", "success", "warning", "error" or
            "critical". Unknown levels (including "success") log at info.
        current_logger (Optional[logging.Logger]): A logger instance to use.
            If not provided, the module-level logger is used.
        app_settings (Optional[AppSettings]): Unused by the routing itself;
            accepted so callers can pass their settings uniformly.
        exc_info (bool): Whether to attach exception information.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def _get_elevated_command_prefix() -> List[str]:
    """
    Returns ``["sudo"]`` unless the process already runs as root.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the invocation and its result.

    Args:
        command: The command to execute, as a list or (with ``shell=True``)
            a string.
        app_settings: Settings providing log symbols. Optional.
        check: Raise CalledProcessError on a non-zero exit code.
        shell: Execute through the shell.
        capture_output: Capture stdout and stderr.
        text: Decode output streams as text.
        cmd_input: Data passed to the command's standard input.
        current_logger: Logger to use instead of the module logger.
        cwd: Working directory for the command.
        env: Environment for the command. ``None`` inherits the current one.

    Returns:
        subprocess.CompletedProcess: The completed process.

    Raises:
        subprocess.CalledProcessError: If ``check`` is set and the command fails.
        FileNotFoundError: If the executable does not exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = symbols_for(app_settings)

    if shell:
        command_to_run: Union[List[str], str] = (
            " ".join(command) if isinstance(command, list) else command
        )
        command_to_log_str = str(command_to_run)
    elif isinstance(command, str):
        log_step(
            f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
            "warning",
            effective_logger,
            app_settings,
        )
        command_to_run = command.split()
        command_to_log_str = command
    else:
        command_to_run = command
        command_to_log_str = subprocess.list2cmdline(command)

    log_step(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}",
        "info",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
        if capture_output and result.stdout and str(result.stdout).strip():
            log_step(
                f"   stdout: {str(result.stdout).strip()}",
                "debug",
                effective_logger,
                app_settings,
            )
        return result
    except subprocess.CalledProcessError as e:
        cmd_executed_str = (
            subprocess.list2cmdline(e.cmd)
            if isinstance(e.cmd, list)
            else str(e.cmd)
        )
        log_step(
            f"{symbols.get('error', '❌')} Command `{cmd_executed_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if e.stderr and hasattr(e.stderr, "strip") and e.stderr.strip():
            log_step(
                f"   stderr: {e.stderr.strip()}",
                "error",
                effective_logger,
                app_settings,
            )
        raise
    except FileNotFoundError as e:
        log_step(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with root privileges, prefixing ``sudo`` when the
    process is not already root. See :func:`run_command` for the arguments.
    """
    elevated_command_list = _get_elevated_command_prefix() + list(command)
    return run_command(
        elevated_command_list,
        app_settings,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=True,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
    )


def command_exists(command_name: str) -> bool:
    """Check if a command exists in the system's PATH."""
    return shutil.which(command_name) is not None
