# stack_setup/run_ledger.py
# -*- coding: utf-8 -*-
"""
Ordered, append-only record of step outcomes for one provisioning run.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from stack_setup.config_models import SYMBOLS_DEFAULT


@dataclass(frozen=True)
class StepOutcome:
    label: str
    success: bool


class RunLedger:
    """Outcomes are only ever appended; the summary keeps their order."""

    def __init__(self) -> None:
        self._outcomes: List[StepOutcome] = []

    def record(self, label: str, success: bool) -> StepOutcome:
        outcome = StepOutcome(label=label, success=bool(success))
        self._outcomes.append(outcome)
        return outcome

    @property
    def outcomes(self) -> Tuple[StepOutcome, ...]:
        return tuple(self._outcomes)

    def __iter__(self) -> Iterator[StepOutcome]:
        return iter(tuple(self._outcomes))

    def __len__(self) -> int:
        return len(self._outcomes)

    def partition(self) -> Tuple[List[StepOutcome], List[StepOutcome]]:
        """Split into (successes, failures) in a single pass."""
        successes: List[StepOutcome] = []
        failures: List[StepOutcome] = []
        for outcome in self._outcomes:
            (successes if outcome.success else failures).append(outcome)
        return successes, failures

    @property
    def has_failures(self) -> bool:
        return any(not outcome.success for outcome in self._outcomes)

    def render_summary(self, symbols: Optional[Dict[str, str]] = None) -> str:
        symbols = symbols or SYMBOLS_DEFAULT
        successes, failures = self.partition()
        lines = ["", "===== Provisioning summary =====", ""]
        lines.append(f"{symbols.get('success', '')} Succeeded:")
        lines.extend(f"  - {o.label}" for o in successes)
        if not successes:
            lines.append("  - None")
        lines.append("")
        lines.append(f"{symbols.get('error', '')} Failed:")
        lines.extend(f"  - {o.label}" for o in failures)
        if not failures:
            lines.append("  - None")
        return "\n".join(lines)
