# provisioning/components/git/git_installer.py
# -*- coding: utf-8 -*-
"""Git and Git LFS installer module."""

import subprocess

from common.command_utils import command_exists, run_elevated_command
from provisioning.base_installer import BaseInstaller
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="git",
    label="Git",
    description="the latest Git and Git LFS packages",
)
class GitInstaller(BaseInstaller):
    version_command = ["git", "--version"]

    def install(self) -> bool:
        if not self.install_packages(self.settings.packages, guarded=False):
            return False
        self._enable_lfs_hooks()
        self.report_version()
        self.log_done()
        return True

    def _enable_lfs_hooks(self) -> None:
        # Optional: a missing or failing git-lfs never fails the step.
        if not command_exists("git-lfs"):
            return
        try:
            run_elevated_command(
                ["git", "lfs", "install", "--system"],
                self.app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.warning(f"git lfs install --system failed: {e}")
