# provisioning/components/nginx/nginx_installer.py
# -*- coding: utf-8 -*-
"""
NGINX installer module.

Apache is removed first: with both installed, whichever starts second
cannot bind port 80.
"""

from common.command_utils import log_step
from common.system_utils import enable_service
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="nginx",
    label="NGINX",
    description="the latest stable NGINX package set",
)
class NginxInstaller(BaseInstaller):
    """Installs NGINX from the nginx.org packages."""

    version_command = ["nginx", "-v"]

    def install(self) -> bool:
        result = self.context.remediator.remove_conflicting(self.name)
        if result.removed:
            log_step(
                f"{self.symbols.get('info', 'ℹ️')} Removed before installing NGINX: {', '.join(result.removed)}",
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
