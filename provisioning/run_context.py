# provisioning/run_context.py
# -*- coding: utf-8 -*-
"""
Per-run state threaded explicitly through every provisioning step.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from common.debian.apt_manager import AptManager
from provisioning.conflict_remediation import ConflictRemediator
from provisioning.service_guard import ServiceStartGuard
from provisioning.version_resolver import ResolvedCandidate, VersionResolver
from stack_setup.config_models import AppSettings
from stack_setup.run_ledger import RunLedger

PromptFunction = Callable[[str, bool], bool]


@dataclass
class RunContext:
    app_settings: AppSettings
    apt: AptManager
    resolver: VersionResolver
    guard: ServiceStartGuard
    remediator: ConflictRemediator
    prompt: PromptFunction
    logger: logging.Logger
    ledger: RunLedger = field(default_factory=RunLedger)
    os_release: Dict[str, str] = field(default_factory=dict)
    codename: str = ""
    architecture: str = ""
    resolved: Dict[str, ResolvedCandidate] = field(default_factory=dict)
    repositories_added: List[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        app_settings: AppSettings,
        prompt: PromptFunction,
        logger: logging.Logger,
        apt: Optional[AptManager] = None,
    ) -> "RunContext":
        """Wire the collaborators for a real run."""
        apt = apt or AptManager(logger=logger)
        return cls(
            app_settings=app_settings,
            apt=apt,
            resolver=VersionResolver(apt, app_settings, logger),
            guard=ServiceStartGuard(app_settings.guard, logger),
            remediator=ConflictRemediator(apt, app_settings, logger),
            prompt=prompt,
            logger=logger,
        )

    def placeholders(self) -> Dict[str, str]:
        """Values substituted into repository definitions."""
        return {
            "codename": self.codename,
            "distro": self.os_release.get("ID", "ubuntu"),
            "version_id": self.os_release.get("VERSION_ID", ""),
            "arch": self.architecture,
        }
