"""
PostgreSQL installer module.

Installs the newest ``postgresql-<major>`` server offered by the package
index together with its matching client.
"""

from common.system_utils import enable_service
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="postgres",
    label="PostgreSQL",
    description="the latest PostgreSQL server and client",
)
class PostgresInstaller(BaseInstaller):
    version_command = ["psql", "--version"]

    def install(self) -> bool:
        # No fallback major version; NotFound fails the step.
        candidate = self.context.resolver.resolve(self.settings.version_spec)
        self.context.resolved[self.name] = candidate

        packages = [
            candidate.identifier,
            self.settings.client_template.format(version=candidate.version),
        ]
        if not self.install_packages(packages):
            return False
        if not enable_service(self.settings.service, self.app_settings, self.logger):
            return False

        self.report_version()
        self.log_done()
        return True
