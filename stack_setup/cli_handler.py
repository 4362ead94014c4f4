# stack_setup/cli_handler.py
# -*- coding: utf-8 -*-
"""
Handles Command Line Interface (CLI) interactions for the provisioning run.
"""

import logging
from typing import Callable, Optional

from common.command_utils import log_step
from stack_setup.config_models import AppSettings

module_logger = logging.getLogger(__name__)

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


def prompt_yes_no(
    prompt_message: str,
    default: bool,
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
    input_func: Optional[Callable[[str], str]] = None,
) -> bool:
    """
    Ask a yes/no question on the terminal.

    An empty answer selects ``default``. Anything other than y/yes/n/no
    (case-insensitive) asks again. End of input selects ``default``, as does
    ``app_settings.assume_yes`` without prompting at all.

    Parameters:
    prompt_message : str
        The question to display.
    default : bool
        The answer used for an empty reply, EOF, or ``--yes``.
    app_settings : AppSettings
        Settings providing ``assume_yes`` and the log symbols.
    current_logger_instance : Optional[logging.Logger]
        Logger to use instead of the module logger.
    input_func : Callable[[str], str]
        Reads one reply. Defaults to the builtin ``input``.

    Returns:
    bool
        The chosen answer.
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    symbols = app_settings.symbols

    if app_settings.assume_yes:
        logger_to_use.info(
            f"{prompt_message} -> {'yes' if default else 'no'} (--yes)"
        )
        return default

    read_reply = input_func or input
    choices = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            user_input = (
                read_reply(f"   {symbols.get('info', 'ℹ️')} {prompt_message} {choices}: ")
                .strip()
                .lower()
            )
        except EOFError:
            log_step(
                f"{symbols.get('warning', '!')} No user input (EOF), defaulting to '{'Y' if default else 'N'}' for prompt: '{prompt_message}'",
                "warning",
                logger_to_use,
                app_settings,
            )
            return default

        if not user_input:
            return default
        if user_input in YES_ANSWERS:
            return True
        if user_input in NO_ANSWERS:
            return False
        print("   Please answer 'y' or 'n'.")


def make_prompt(
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
) -> Callable[[str, bool], bool]:
    """Bind ``prompt_yes_no`` to the settings for use as the run context prompt."""

    def prompt(prompt_message: str, default: bool) -> bool:
        return prompt_yes_no(
            prompt_message, default, app_settings, current_logger_instance
        )

    return prompt


def view_configuration(
    app_config: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Log the effective configuration values (CLI > YAML > ENV > Defaults).
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_config.symbols

    config_text = f"{symbols.get('info', 'ℹ️')} Current effective configuration values (CLI > YAML > ENV > Defaults):\n\n"
    config_text += f"  Assume yes:                    {app_config.assume_yes}\n"
    config_text += f"  Allow non-root:                {app_config.allow_non_root}\n"
    config_text += f"  HTTP timeout (s):              {app_config.http_timeout}\n"
    config_text += f"  OS release file:               {app_config.os_release_path}\n"
    config_text += f"  Base packages:                 {' '.join(app_config.base_packages)}\n"
    config_text += f"  Components:                    {', '.join(app_config.components)}\n"
    config_text += f"  Log level / file:              {app_config.log_level} / {app_config.log_file or '-'}\n\n"

    config_text += "  Service-start guard (guard.*):\n"
    config_text += f"    Policy path:                 {app_config.guard.policy_path}\n"
    config_text += f"    Backup suffix:               {app_config.guard.backup_suffix}\n\n"

    config_text += "  PHP (php.*):\n"
    config_text += f"    Fallback version:            {app_config.php.fallback_version}\n"
    config_text += f"    All extensions:              {app_config.php.install_all_extensions}\n\n"

    config_text += "  Conflicts:\n"
    for target, families in sorted(app_config.conflicts.items()):
        names = ", ".join(family.name for family in families) or "None"
        config_text += f"    {target:<29}{names}\n"

    log_step(
        "Displaying current configuration:", "info", logger_to_use, app_config
    )
    log_step(f"\n{config_text}", "info", logger_to_use, app_config)
