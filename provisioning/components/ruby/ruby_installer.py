# provisioning/components/ruby/ruby_installer.py
# -*- coding: utf-8 -*-
"""
Ruby installer module.

Builds the newest stable Ruby from the source tarball published on the
release listing, preferring a stable release over any pre-release.
"""

import os

from common import http_utils
from common.command_utils import run_elevated_command
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="ruby",
    label="Ruby",
    description="Ruby built from the newest source release",
)
class RubyInstaller(BaseInstaller):
    version_command = ["ruby", "--version"]

    def install(self) -> bool:
        settings = self.settings
        candidate = self.context.resolver.resolve(settings.version_spec)
        self.context.resolved[self.name] = candidate

        if not self.install_packages(settings.build_packages, guarded=False):
            return False

        archive_name = candidate.identifier.rsplit("/", 1)[-1]
        archive_path = os.path.join(settings.source_dir, archive_name)
        build_dir = os.path.join(settings.source_dir, f"ruby-{candidate.version}")

        http_utils.download_file(
            candidate.identifier, archive_path, timeout=self.app_settings.http_timeout
        )
        run_elevated_command(
            ["tar", "-xzf", archive_path, "-C", settings.source_dir],
            self.app_settings,
            current_logger=self.logger,
        )

        for command in (
            ["./configure", f"--prefix={settings.prefix}", "--disable-install-doc"],
            ["make", f"-j{os.cpu_count() or 1}"],
            ["make", "install"],
        ):
            run_elevated_command(
                command, self.app_settings, current_logger=self.logger, cwd=build_dir
            )

        self.report_version()
        self.log_done()
        return True
