# provisioning/components/neovim/neovim_installer.py
# -*- coding: utf-8 -*-
"""
Neovim installer module.

Neovim is installed from the prebuilt release archive rather than the
distribution package, which typically lags several releases behind.
"""

import os
import tempfile

from common.command_utils import run_elevated_command
from provisioning.base_installer import BaseInstaller
from provisioning.exceptions import CandidateNotFoundError
from provisioning.registry import InstallerRegistry


@InstallerRegistry.register(
    name="neovim",
    label="Neovim",
    description="the latest Neovim release",
)
class NeovimInstaller(BaseInstaller):
    version_command = ["nvim", "--version"]

    def install(self) -> bool:
        settings = self.settings
        spec = settings.release_spec(self.context.architecture)
        if spec is None:
            raise CandidateNotFoundError(
                settings.version_spec.name,
                f"no release build for architecture {self.context.architecture}",
            )
        candidate = self.context.resolver.resolve(spec)
        self.context.resolved[self.name] = candidate

        with tempfile.TemporaryDirectory(prefix="stack-setup-nvim-") as tmp_dir:
            archive = os.path.join(tmp_dir, "nvim.tar.gz")
            used_url = self.context.resolver.download_release(candidate, archive)
            self.logger.info(f"Installing Neovim from {used_url}")

            for command in (
                ["rm", "-rf", settings.install_dir],
                ["install", "-d", "-m", "0755", settings.install_dir],
                [
                    "tar", "-xzf", archive,
                    "-C", settings.install_dir,
                    "--strip-components=1",
                ],
                [
                    "ln", "-sfn",
                    os.path.join(settings.install_dir, settings.binary_path),
                    settings.link_path,
                ],
            ):
                run_elevated_command(command, self.app_settings, current_logger=self.logger)

        self.report_version()
        self.log_done()
        return True
