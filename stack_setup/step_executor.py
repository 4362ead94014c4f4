# stack_setup/step_executor.py
# -*- coding: utf-8 -*-
"""
Provides functionality to execute individual provisioning steps.

A step is any callable taking the run context. It fails by returning
``False`` or by raising; either way the failure is logged, echoed to
stderr and recorded in the run ledger, and control returns to the caller.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, Callable, Optional

from common.command_utils import log_step
from stack_setup.run_ledger import StepOutcome

if TYPE_CHECKING:
    from provisioning.run_context import RunContext

module_logger = logging.getLogger(__name__)


def execute_step(
    label: str,
    action: Callable[["RunContext"], Any],
    context: "RunContext",
    current_logger: Optional[logging.Logger] = None,
) -> StepOutcome:
    """
    Execute a single provisioning step and record its outcome.

    Args:
        label: Human-readable step name, as printed in the summary.
        action: Called with ``context``. Returning ``False`` marks the step
            failed; any other return value (including None) is success.
        context: The run context, providing settings and the ledger.
        current_logger: Logger to use instead of the context's.

    Returns:
        The StepOutcome appended to ``context.ledger``. Exceptions raised by
        ``action`` never propagate.
    """
    logger_to_use = current_logger or context.logger or module_logger
    app_settings = context.app_settings
    symbols = app_settings.symbols

    log_step(
        f"--- {symbols.get('step', '➡️')} Executing: {label} ---",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        step_result = action(context)
    except Exception as e:
        log_step(
            f"{symbols.get('error', '❌')} FAILED: {label}",
            "error",
            logger_to_use,
            app_settings,
        )
        log_step(
            f"   Error details: {e}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
        print(f"[FAILED] {label}: {e}", file=sys.stderr)
        return context.ledger.record(label, False)

    if step_result is False:
        log_step(
            f"{symbols.get('error', '❌')} Step returned failure: {label}",
            "error",
            logger_to_use,
            app_settings,
        )
        print(f"[FAILED] {label} (failing command and exit code reported above)", file=sys.stderr)
        return context.ledger.record(label, False)

    log_step(
        f"--- {symbols.get('success', '✅')} Successfully completed: {label} ---",
        "success",
        logger_to_use,
        app_settings,
    )
    return context.ledger.record(label, True)
