# provisioning/components/docker/docker_installer.py
# -*- coding: utf-8 -*-
"""
Docker installer module.

This module installs Docker Engine, its CLI and plugins from the official
repository, after removing the distribution's unofficial Docker packages.
"""

from common.command_utils import log_step
from common.system_utils import enable_service
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="docker",
    label="Docker",
    description="Docker Engine, CLI, and plugins",
)
class DockerInstaller(BaseInstaller):
    """
    Installer for Docker Engine container runtime.
    """

    version_command = ["docker", "--version"]

    def install(self) -> bool:
        result = self.context.remediator.remove_conflicting(self.name)
        if result.removed:
            log_step(
                f"{self.symbols.get('info', 'ℹ️')} Replaced distribution Docker packages: {', '.join(result.removed)}",
                "info",
                self.logger,
                self.app_settings,
            )

        if not self.install_packages(self.settings.packages):
            return False
        if not enable_service(self.settings.service, self.app_settings, self.logger):
            return False

        self.report_version()
        self.log_done()
        return True
