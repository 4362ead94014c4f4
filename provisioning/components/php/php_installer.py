# provisioning/components/php/php_installer.py
# -*- coding: utf-8 -*-
"""
PHP installer module.

The newest PHP minor version in the package index is tried first. If any
of its packages fail to install, whatever was installed for it is purged
and the whole package set is retried once with the configured fallback
minor version. An unresolvable version fails the step without a retry.
"""

import re
import subprocess
from typing import List

from common.command_utils import log_step
from common.debian.apt_manager import AptManager
from common.system_utils import enable_service, set_alternative
from provisioning.base_installer import BaseInstaller
from provisioning.conflict_remediation import PackageMatcher
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="php",
    label="PHP stack",
    description="PHP, FPM, and every available PHP extension",
)
class PhpInstaller(BaseInstaller):
    version_command = ["php", "--version"]

    def install(self) -> bool:
        settings = self.settings
        version = self._resolve_version()

        if self._install_version(version):
            return self._activate(version)

        fallback = settings.fallback_version
        log_step(
            f"{self.symbols.get('warning', '!')} PHP {version} could not be installed; retrying with PHP {fallback}.",
            "warning",
            self.logger,
            self.app_settings,
        )
        self._purge_version(version)

        if self._install_version(fallback):
            return self._activate(fallback)

        log_step(
            f"{self.symbols.get('error', '❌')} PHP {fallback} installation failed as well.",
            "error",
            self.logger,
            self.app_settings,
        )
        return False

    def _resolve_version(self) -> str:
        """
        Raises:
            CandidateNotFoundError: If no PHP minor version is in the index.
        """
        candidate = self.context.resolver.resolve(self.settings.version_spec)
        self.context.resolved[self.name] = candidate
        return candidate.version

    def base_packages(self, version: str) -> List[str]:
        prefix = f"php{version}"
        return [prefix + suffix for suffix in self.settings.base_suffixes] + list(
            self.settings.extra_packages
        )

    def discover_extensions(self, version: str) -> List[str]:
        """
        Every ``php<version>-*`` package in the index, minus debug symbols
        and the configured exclusions.
        """
        prefix = f"php{version}-"
        excluded = {prefix + name for name in self.settings.extension_exclusions}
        names = self.context.apt.search_names(
            f"^{re.escape(prefix)}", self.app_settings
        )
        return [
            name
            for name in names
            if name.startswith(prefix)
            and not name.endswith("-dbgsym")
            and name not in excluded
        ]

    def _install_version(self, version: str) -> bool:
        log_step(
            f"{self.symbols.get('package', '📦')} Installing PHP {version} base packages...",
            "info",
            self.logger,
            self.app_settings,
        )
        if not self.install_packages(self.base_packages(version)):
            return False

        if not self.settings.install_all_extensions:
            return True

        try:
            extensions = self.discover_extensions(version)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Could not list PHP {version} extensions: {e}")
            return False
        if not extensions:
            self.logger.info(f"No additional PHP {version} extensions were found.")
            return True

        self.logger.info(f"Installing {len(extensions)} PHP {version} extensions...")
        return self.install_packages(extensions)

    def _purge_version(self, version: str) -> None:
        matcher = PackageMatcher(frozenset({f"php{version}"}), (f"php{version}-*",))
        try:
            snapshot = self.context.apt.installed_packages(self.app_settings)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.warning(f"Could not list installed PHP {version} packages: {e}")
            return
        leftovers = matcher.select(
            name
            for name, status in snapshot.items()
            if AptManager.status_is_present(status)
            or AptManager.status_is_config_residue(status)
        )
        if leftovers:
            self.context.apt.purge(leftovers, self.app_settings)

    def _activate(self, version: str) -> bool:
        binary = self.settings.binary_template.format(version=version)
        set_alternative("php", binary, self.app_settings, self.logger)

        fpm_service = self.settings.fpm_service_template.format(version=version)
        if not enable_service(fpm_service, self.app_settings, self.logger):
            self.logger.warning(f"{fpm_service} was installed but could not be started.")

        self.report_version()
        self.log_done()
        return True
