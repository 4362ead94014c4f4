# provisioning/components/mysql/mysql_installer.py
# -*- coding: utf-8 -*-
"""MySQL Community Server installer module."""

from common.system_utils import enable_service
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="mysql",
    label="MySQL",
    description="the latest stable MySQL Server package set",
)
class MysqlInstaller(BaseInstaller):
    version_command = ["mysql", "--version"]

    def install(self) -> bool:
        if not self.install_packages(self.settings.packages):
            return False
        if not enable_service(self.settings.service, self.app_settings, self.logger):
            return False
        self.report_version()
        self.log_done()
        return True
