# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
import tempfile
from typing import Dict, List, Optional, Union

import requests

from common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from common.http_utils import fetch_text
from stack_setup.config_models import AppSettings

DPKG_STATUS_FORMAT = "${binary:Package}\t${db:Status-Abbrev}\n"
SOURCES_DIR = "/etc/apt/sources.list.d"
NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def _as_list(packages: Union[List[str], str]) -> List[str]:
    return packages if isinstance(packages, list) else [packages]


class AptManager:
    """
    A centralized manager for Debian apt packages using command-line tools.

    Mutating operations return True/False and log their failures; read-only
    queries (``search_names``, ``installed_packages``) raise on failure so
    that an unreadable package index is never mistaken for an empty one.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initializes the AptManager.
        Args:
            logger: An optional logging object.
        """
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    @staticmethod
    def _env() -> Dict[str, str]:
        return dict(os.environ, **NONINTERACTIVE_ENV)

    def update(self, app_settings: AppSettings) -> bool:
        """
        Updates the list of available packages using 'apt-get update'.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        try:
            run_elevated_command(
                ["apt-get", "update", "-yq"],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info("Apt package lists updated successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to update apt cache: {e}")
            return False

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        no_install_recommends: bool = False,
    ) -> bool:
        """
        Installs one or more packages using 'apt-get install'.

        Packages dpkg already reports as installed are skipped.

        Args:
            packages: A single package name or a list of package names.
            app_settings: The application settings.
            no_install_recommends: Pass --no-install-recommends.

        Returns:
            True if successful, False otherwise.
        """
        packages = _as_list(packages)
        if not packages:
            return True

        try:
            installed = self.installed_packages(app_settings)
        except (subprocess.CalledProcessError, FileNotFoundError):
            installed = {}

        packages_to_install = []
        for pkg_name in packages:
            if self.status_is_installed(installed.get(pkg_name, "")):
                self.logger.info(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            elif pkg_name not in packages_to_install:
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        cmd = ["apt-get", "install", "-yq"]
        if no_install_recommends:
            cmd.append("--no-install-recommends")
        try:
            run_elevated_command(
                cmd + packages_to_install,
                app_settings,
                current_logger=self.logger,
                env=self._env(),
            )
            self.logger.info("Packages installed successfully.")
            return True
        except subprocess.CalledProcessError as e:
            self.logger.error(
                f"Failed to install packages ({', '.join(packages_to_install)}): exit code {e.returncode}"
            )
            return False
        except FileNotFoundError as e:
            self.logger.error(f"Failed to install packages: {e}")
            return False

    def purge(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
    ) -> bool:
        """
        Purges one or more packages using 'apt-get purge'.

        Returns:
            True if successful, False otherwise.
        """
        packages = _as_list(packages)
        if not packages:
            return True

        self.logger.info(f"Purging packages: {', '.join(packages)}")
        try:
            run_elevated_command(
                ["apt-get", "purge", "-yq"] + packages,
                app_settings,
                current_logger=self.logger,
                env=self._env(),
            )
            self.logger.info("Packages purged successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to purge packages: {e}")
            return False

    def autoremove(
        self,
        app_settings: AppSettings,
        purge: bool = False,
    ) -> bool:
        """
        Removes automatically installed packages that are no longer needed.

        Args:
            app_settings: The application settings.
            purge: Whether to purge configuration files as well.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info("Running autoremove to clean up unused packages...")
        cmd = ["apt-get", "autoremove", "-yq"]
        if purge:
            cmd.append("--purge")
        try:
            run_elevated_command(
                cmd, app_settings, current_logger=self.logger, env=self._env()
            )
            self.logger.info("Autoremove completed successfully.")
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to autoremove packages: {e}")
            return False

    def clean(self, app_settings: AppSettings) -> bool:
        """Clears the local repository of retrieved package files."""
        self.logger.info("Cleaning apt package cache...")
        try:
            run_elevated_command(
                ["apt-get", "clean"], app_settings, current_logger=self.logger
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to clean apt cache: {e}")
            return False

    def search_names(self, pattern: str, app_settings: AppSettings) -> List[str]:
        """
        Lists package names in the index matching a regular expression.

        Uses 'apt-cache --names-only search'; the result keeps the index's
        own ordering with duplicates removed.

        Raises:
            subprocess.CalledProcessError: If apt-cache fails.
        """
        result = run_command(
            ["apt-cache", "--names-only", "search", pattern],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=self.logger,
        )
        names: List[str] = []
        for line in (result.stdout or "").splitlines():
            name = line.split(" - ", 1)[0].strip()
            if name and name not in names:
                names.append(name)
        return names

    def installed_packages(self, app_settings: AppSettings) -> Dict[str, str]:
        """
        Snapshot of dpkg's database: package name -> abbreviated status
        (e.g. "ii ", "rc "). Architecture qualifiers are stripped.

        Raises:
            subprocess.CalledProcessError: If dpkg-query fails.
        """
        result = run_command(
            ["dpkg-query", "-W", f"-f={DPKG_STATUS_FORMAT}"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=self.logger,
        )
        snapshot: Dict[str, str] = {}
        for line in (result.stdout or "").splitlines():
            if "\t" not in line:
                continue
            name, status = line.split("\t", 1)
            snapshot[name.split(":", 1)[0]] = status
        return snapshot

    @staticmethod
    def status_is_installed(status: str) -> bool:
        """True when an abbreviated status means fully installed."""
        return len(status) >= 2 and status[1] == "i"

    @staticmethod
    def status_is_present(status: str) -> bool:
        """True when a package has anything beyond configuration files on disk."""
        return len(status) >= 2 and status[1] not in ("n", "c")

    @staticmethod
    def status_is_config_residue(status: str) -> bool:
        """True for packages removed but not purged ("rc")."""
        return len(status) >= 2 and status[1] == "c"

    def dpkg_architecture(self, app_settings: AppSettings) -> str:
        """Returns the native dpkg architecture, e.g. 'amd64'."""
        result = run_command(
            ["dpkg", "--print-architecture"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=self.logger,
        )
        return result.stdout.strip()

    def add_ppa(self, ppa: str, app_settings: AppSettings) -> bool:
        """Enables a Launchpad PPA with add-apt-repository."""
        self.logger.info(f"Adding repository: {ppa}")
        try:
            run_elevated_command(
                ["add-apt-repository", "-y", ppa],
                app_settings,
                current_logger=self.logger,
                env=self._env(),
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to add repository '{ppa}': {e}")
            return False

    def add_repository(
        self,
        repo_name: str,
        repo_details: Dict[str, str],
        app_settings: AppSettings,
    ) -> bool:
        """
        Adds a new apt repository by creating a deb822-style .sources file.

        Args:
            repo_name: The name for the repository file.
            repo_details: The deb822 fields, in output order.
            app_settings: The application settings.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(
            f"Adding repository '{repo_name}' using deb822 format..."
        )
        repo_file_path = os.path.join(SOURCES_DIR, f"{repo_name}.sources")
        deb822_content = "".join(
            f"{key}: {value}\n" for key, value in repo_details.items()
        )

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", suffix=".sources", delete=False
            ) as f:
                f.write(deb822_content)
                tmp_path = f.name
            run_elevated_command(
                ["install", "-m", "0644", tmp_path, repo_file_path],
                app_settings,
                current_logger=self.logger,
            )
            self.logger.info(
                f"Successfully created repository file: {repo_file_path}"
            )
        except (subprocess.CalledProcessError, OSError) as e:
            self.logger.error(
                f"Failed to create repository file '{repo_file_path}': {e}"
            )
            return False
        finally:
            if tmp_path:
                os.unlink(tmp_path)
        return True

    def add_gpg_key_from_url(
        self, key_url: str, keyring_path: str, app_settings: AppSettings
    ) -> bool:
        """
        Downloads a signing key and stores it dearmored in ``keyring_path``.

        Returns:
            True if successful, False otherwise.
        """
        self.logger.info(f"Adding GPG key from {key_url} to {keyring_path}")
        try:
            key_text = fetch_text(key_url, timeout=app_settings.http_timeout)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to download GPG key {key_url}: {e}")
            return False

        try:
            run_elevated_command(
                ["install", "-d", "-m", "0755", os.path.dirname(keyring_path)],
                app_settings,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["gpg", "--batch", "--yes", "--dearmor", "-o", keyring_path],
                app_settings,
                cmd_input=key_text,
                current_logger=self.logger,
            )
            run_elevated_command(
                ["chmod", "0644", keyring_path],
                app_settings,
                current_logger=self.logger,
            )
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            self.logger.error(f"Failed to add GPG key: {e}")
            return False

        self.logger.info("GPG key added and permissions set.")
        return True
