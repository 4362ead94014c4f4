""".NET SDK installer module."""

from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="dotnet",
    label=".NET SDK",
    description="the latest .NET SDK",
)
class DotnetInstaller(BaseInstaller):
    version_command = ["dotnet", "--version"]

    def install(self) -> bool:
        candidate = self.context.resolver.resolve(self.settings.version_spec)
        self.context.resolved[self.name] = candidate

        if not self.install_packages([candidate.identifier], guarded=False):
            return False
        self.report_version()
        self.log_done()
        return True
