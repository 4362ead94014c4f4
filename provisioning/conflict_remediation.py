# provisioning/conflict_remediation.py
# -*- coding: utf-8 -*-
"""
Forced removal of software that conflicts with a component about to be
installed (e.g. Apache holding port 80 before NGINX is installed).
"""

import logging
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from common.command_utils import log_step, symbols_for
from common.debian.apt_manager import AptManager
from common.system_utils import remove_paths, stop_and_disable_service
from provisioning.exceptions import ConflictRemediationError
from stack_setup.config_models import AppSettings, ConflictFamily

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageMatcher:
    """Exact package names plus shell-style globs."""

    exact_names: FrozenSet[str]
    globs: Tuple[str, ...]

    @classmethod
    def from_family(cls, family: ConflictFamily) -> "PackageMatcher":
        return cls(frozenset(family.exact_names), tuple(family.globs))

    def matches(self, package_name: str) -> bool:
        return package_name in self.exact_names or any(
            fnmatchcase(package_name, pattern) for pattern in self.globs
        )

    def select(self, package_names: Iterable[str]) -> List[str]:
        """Sorted, de-duplicated names accepted by this matcher."""
        return sorted({name for name in package_names if self.matches(name)})


@dataclass(frozen=True)
class RemediationResult:
    target: str
    removed: Tuple[str, ...]


class ConflictRemediator:
    """Removes the conflict families configured for a target component."""

    def __init__(
        self,
        apt_manager: AptManager,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.apt_manager = apt_manager
        self.app_settings = app_settings
        self.logger = logger or module_logger

    def families_for(self, target_component: str) -> List[ConflictFamily]:
        return list(self.app_settings.conflicts.get(target_component, []))

    def _packages_where(
        self, matcher: PackageMatcher, status_test: Callable[[str], bool]
    ) -> List[str]:
        snapshot: Dict[str, str] = self.apt_manager.installed_packages(
            self.app_settings
        )
        return matcher.select(
            name for name, status in snapshot.items() if status_test(status)
        )

    def remove_conflicting(self, target_component: str) -> RemediationResult:
        """
        Purge every installed package conflicting with ``target_component``.

        Returns:
            The packages removed; empty when nothing conflicting was installed.

        Raises:
            ConflictRemediationError: If a conflicting package is still
                installed after the purge.
        """
        removed: List[str] = []
        for family in self.families_for(target_component):
            removed.extend(self._remediate_family(target_component, family))
        return RemediationResult(target_component, tuple(removed))

    def _remediate_family(
        self, target_component: str, family: ConflictFamily
    ) -> List[str]:
        symbols = symbols_for(self.app_settings)
        matcher = PackageMatcher.from_family(family)

        present = self._packages_where(matcher, AptManager.status_is_present)
        if not present:
            self.logger.debug(
                f"No {family.name} packages installed; nothing to remove before {target_component}."
            )
            return []

        log_step(
            f"{symbols.get('warning', '!')} Removing {family.name} packages that conflict with {target_component}: {', '.join(present)}",
            "warning",
            self.logger,
            self.app_settings,
        )

        for service in family.services:
            stop_and_disable_service(service, self.app_settings, self.logger)

        if not self.apt_manager.purge(present, self.app_settings):
            self.logger.warning(
                f"Purge of {family.name} packages reported failure; verifying what remains."
            )
        self.apt_manager.autoremove(self.app_settings, purge=True)

        residue = self._packages_where(
            matcher, AptManager.status_is_config_residue
        )
        if residue:
            self.apt_manager.purge(residue, self.app_settings)

        remaining = self._packages_where(matcher, AptManager.status_is_installed)
        if remaining:
            log_step(
                f"{symbols.get('error', '❌')} {family.name} packages still installed: {', '.join(remaining)}",
                "error",
                self.logger,
                self.app_settings,
            )
            raise ConflictRemediationError(target_component, remaining)

        remove_paths(family.residual_paths, self.app_settings, self.logger)
        log_step(
            f"{symbols.get('success', '✅')} Removed {len(present)} {family.name} package(s).",
            "success",
            self.logger,
            self.app_settings,
        )
        return present
