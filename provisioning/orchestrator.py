"""
Orchestrator for a provisioning run.

Steps run strictly one after another, because every step mutates the
shared package database:

1. base tooling (mandatory)
2. OS identification (mandatory)
3. optional vendor repositories
4. package index refresh, when a repository was added
5. optional component installs, in configured order
6. cleanup

Each step's outcome goes to the run ledger; the summary printed at the end
is the list of what needs manual follow-up. Only the mandatory steps can
end the run early.
"""

import importlib
import logging
import pkgutil
import sys
from typing import List, Optional

from common.command_utils import log_step
from common.system_utils import get_os_codename, read_os_release
from provisioning.base_installer import BaseInstaller
from provisioning.exceptions import FatalStepError
from provisioning.registry import InstallerRegistry
from provisioning.run_context import RunContext
from stack_setup.step_executor import execute_step


class ProvisioningOrchestrator:
    """Sequences the steps of one provisioning run."""

    def __init__(
        self,
        context: RunContext,
        logger: Optional[logging.Logger] = None,
    ):
        self.context = context
        self.app_settings = context.app_settings
        self.logger = logger or context.logger or logging.getLogger(
            self.__class__.__name__
        )

        # Import all component modules to ensure they are registered
        self._import_component_modules()

    def _import_component_modules(self) -> None:
        """
        Import ``provisioning.components.<name>.<name>_installer`` for every
        component package so that each installer registers itself.
        """
        import provisioning.components as components_package

        for _, package_name, is_package in pkgutil.iter_modules(
            components_package.__path__
        ):
            if not is_package:
                continue
            module_name = f"provisioning.components.{package_name}.{package_name}_installer"
            try:
                importlib.import_module(module_name)
                self.logger.debug(f"Imported installer module: {module_name}")
            except ImportError as e:
                self.logger.warning(
                    f"Error importing installer module {module_name}: {e}"
                )

    def selected_installers(self) -> List[BaseInstaller]:
        """Installers for the configured components, in configured order."""
        installers = []
        seen = set()
        for name in self.app_settings.components:
            if not InstallerRegistry.is_registered(name):
                self.logger.warning(f"Unknown component '{name}' ignored.")
                continue
            if name in seen:
                continue
            seen.add(name)
            installer = InstallerRegistry.get_installer(name)(self.context, self.logger)
            if installer.is_enabled():
                installers.append(installer)
            else:
                self.logger.info(f"Component '{name}' is disabled in the configuration.")
        return installers

    def run(self) -> int:
        """
        Execute the whole run and print the summary.

        Returns:
            The process exit status: 1 if a mandatory step failed, else 0,
            even when optional steps failed.
        """
        symbols = self.app_settings.symbols
        try:
            self.ensure_base_tooling()
            self.identify_os()
        except FatalStepError as e:
            log_step(
                f"{symbols.get('critical', '🔥')} {e}",
                "critical",
                self.logger,
                self.app_settings,
            )
            print(f"Fatal: {e}", file=sys.stderr)
            self.print_summary()
            return 1

        installers = self.selected_installers()
        self.configure_repositories(installers)
        self.refresh_package_index()
        self.install_components(installers)
        self.cleanup()

        if self.context.ledger.has_failures:
            log_step(
                f"{symbols.get('warning', '!')} Provisioning finished; some steps failed and need manual follow-up.",
                "warning",
                self.logger,
                self.app_settings,
            )
        else:
            log_step(
                f"{symbols.get('sparkles', '✨')} All requested actions have completed.",
                "success",
                self.logger,
                self.app_settings,
            )
        self.print_summary()
        return 0

    def ensure_base_tooling(self) -> None:
        """
        Raises:
            FatalStepError: If the base packages cannot be installed.
        """

        def action(ctx: RunContext) -> bool:
            return ctx.apt.update(ctx.app_settings) and ctx.apt.install(
                ctx.app_settings.base_packages,
                ctx.app_settings,
                no_install_recommends=True,
            )

        if not execute_step("Base tooling", action, self.context).success:
            raise FatalStepError("Base tooling could not be installed.")

    def identify_os(self) -> None:
        """
        Record the OS release, codename and dpkg architecture in the context.

        Raises:
            FatalStepError: If the codename or architecture is unknown.
        """

        def action(ctx: RunContext) -> bool:
            ctx.os_release = read_os_release(ctx.app_settings.os_release_path)
            codename = get_os_codename(ctx.app_settings, self.logger)
            if not codename:
                self.logger.error(
                    f"Unable to determine the OS codename (VERSION_CODENAME missing from {ctx.app_settings.os_release_path})."
                )
                return False
            ctx.codename = codename
            ctx.architecture = ctx.apt.dpkg_architecture(ctx.app_settings)
            self.logger.info(
                f"Detected {ctx.os_release.get('ID', 'unknown')} {codename} ({ctx.architecture})"
            )
            return True

        if not execute_step("OS identification", action, self.context).success:
            raise FatalStepError("The operating system could not be identified.")

    def configure_repositories(self, installers: List[BaseInstaller]) -> None:
        for installer in installers:
            if installer.repository() is None:
                continue
            label = f"{installer.get_label()} repository"
            if not self.context.prompt(installer.repository_prompt(), True):
                self.logger.info(f"Skipping {label} setup.")
                continue
            outcome = execute_step(
                label,
                lambda ctx, installer=installer: installer.configure_repository(),
                self.context,
            )
            if outcome.success:
                self.context.repositories_added.append(installer.name)

    def refresh_package_index(self) -> None:
        if not self.context.repositories_added:
            self.logger.info(
                "No new repositories were added; skipping apt-get update."
            )
            return
        execute_step(
            "Package index refresh",
            lambda ctx: ctx.apt.update(ctx.app_settings),
            self.context,
        )

    def install_components(self, installers: List[BaseInstaller]) -> None:
        for installer in installers:
            if not self.context.prompt(installer.install_prompt(), True):
                self.logger.info(f"{installer.get_label()} installation skipped.")
                continue
            execute_step(
                installer.get_label(),
                lambda ctx, installer=installer: installer.install(),
                self.context,
            )

    def cleanup(self) -> None:
        def action(ctx: RunContext) -> bool:
            removed = ctx.apt.autoremove(ctx.app_settings, purge=True)
            cleaned = ctx.apt.clean(ctx.app_settings)
            return removed and cleaned

        execute_step("Cleanup", action, self.context)

    def print_summary(self) -> None:
        print(self.context.ledger.render_summary(self.app_settings.symbols))
