"""
Base installer class for all component installers.

A component installer contributes two optional orchestration steps: adding
its vendor repository, and installing its packages. Both run inside the
step executor, so they report failure by returning False or raising.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from common.command_utils import log_step
from common.system_utils import report_tool_version
from provisioning.run_context import RunContext
from stack_setup.config_models import RepositorySpec


class BaseInstaller(ABC):
    """
    Base class for all component installers.

    Subclasses are registered with ``InstallerRegistry.register`` and read
    their configuration from ``app_settings.<name>``.
    """

    # Set per installer by the registry decorator.
    name: str = ""
    label: str = ""
    description: str = ""
    version_command: Optional[List[str]] = None

    def __init__(
        self,
        context: RunContext,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the installer.

        Args:
            context: The run context shared by every step.
            logger: Optional logger instance. Defaults to the context's logger.
        """
        self.context = context
        self.app_settings = context.app_settings
        self.logger = logger or context.logger or logging.getLogger(
            self.__class__.__name__
        )

    @property
    def settings(self) -> Any:
        return getattr(self.app_settings, self.name)

    @property
    def symbols(self) -> Dict[str, str]:
        return self.app_settings.symbols

    def is_enabled(self) -> bool:
        return bool(getattr(self.settings, "enabled", True))

    def repository(self) -> Optional[RepositorySpec]:
        return getattr(self.settings, "repository", None)

    def configure_repository(self) -> bool:
        """
        Register the component's vendor repository.

        Returns:
            True if the repository was added, False otherwise.
        """
        spec = self.repository()
        if spec is None:
            return True

        apt = self.context.apt
        if spec.ppa:
            return apt.add_ppa(spec.ppa, self.app_settings)

        values = self.context.placeholders()
        if spec.key_url and spec.keyring_path:
            if not apt.add_gpg_key_from_url(
                spec.key_url.format(**values), spec.keyring_path, self.app_settings
            ):
                return False

        details = {
            "Types": spec.types,
            "URIs": (spec.uris or "").format(**values),
            "Suites": spec.suites.format(**values),
            "Components": spec.components,
        }
        if spec.architectures:
            details["Architectures"] = spec.architectures.format(**values)
        if spec.keyring_path:
            details["Signed-By"] = spec.keyring_path
        return apt.add_repository(spec.name, details, self.app_settings)

    @abstractmethod
    def install(self) -> bool:
        """
        Install the component.

        Returns:
            True if the installation was successful, False otherwise.
        """

    def install_packages(self, packages: List[str], guarded: bool = True) -> bool:
        """
        Install ``packages``, optionally with service auto-start suppressed
        for the duration of the installation.
        """
        if not guarded:
            return self.context.apt.install(packages, self.app_settings)
        with self.context.guard.suppressed():
            return self.context.apt.install(packages, self.app_settings)

    def report_version(self) -> None:
        """Log the installed tool's version. Failures are ignored."""
        if self.version_command:
            report_tool_version(self.version_command, self.app_settings, self.logger)

    def get_label(self) -> str:
        return self.label or self.name

    def repository_prompt(self) -> str:
        spec = self.repository()
        description = spec.description if spec and spec.description else f"the {self.get_label()} repository"
        return f"Add {description}?"

    def install_prompt(self) -> str:
        return f"Install {self.description or self.get_label()} now?"

    def log_done(self) -> None:
        log_step(
            f"{self.symbols.get('success', '✅')} {self.get_label()} installed successfully.",
            "success",
            self.logger,
            self.app_settings,
        )
