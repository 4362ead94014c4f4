# tests/conftest.py
import logging
import re
from typing import Dict, Iterable, List, Optional

import pytest

from provisioning.run_context import RunContext
from stack_setup.config_models import AppSettings, ServiceGuardSettings


class FakeAptManager:
    """
    In-memory stand-in for AptManager.

    ``statuses`` is the dpkg database (name -> abbreviated status) and
    ``index`` the package names apt-cache knows about. Installing a package
    listed in ``failing`` fails the whole transaction, as apt-get does.
    Packages in ``stubborn`` survive a purge.
    """

    def __init__(
        self,
        statuses: Optional[Dict[str, str]] = None,
        index: Optional[Iterable[str]] = None,
        failing: Optional[Iterable[str]] = None,
        stubborn: Optional[Iterable[str]] = None,
    ):
        self.statuses: Dict[str, str] = dict(statuses or {})
        self.index: List[str] = list(index or [])
        self.failing = set(failing or ())
        self.stubborn = set(stubborn or ())
        self.architecture = "amd64"
        self.calls: List[tuple] = []

    def update(self, app_settings):
        self.calls.append(("update",))
        return True

    def install(self, packages, app_settings, no_install_recommends=False):
        packages = [packages] if isinstance(packages, str) else list(packages)
        self.calls.append(("install", tuple(packages)))
        if self.failing.intersection(packages):
            return False
        for name in packages:
            self.statuses[name] = "ii "
        return True

    def purge(self, packages, app_settings):
        packages = list(packages)
        self.calls.append(("purge", tuple(packages)))
        for name in packages:
            if name not in self.stubborn:
                self.statuses.pop(name, None)
        return True

    def autoremove(self, app_settings, purge=False):
        self.calls.append(("autoremove", purge))
        return True

    def clean(self, app_settings):
        self.calls.append(("clean",))
        return True

    def search_names(self, pattern, app_settings):
        self.calls.append(("search_names", pattern))
        regex = re.compile(pattern)
        return [name for name in self.index if regex.search(name)]

    def installed_packages(self, app_settings):
        return dict(self.statuses)

    def dpkg_architecture(self, app_settings):
        return self.architecture

    def add_ppa(self, ppa, app_settings):
        self.calls.append(("add_ppa", ppa))
        return True

    def add_gpg_key_from_url(self, key_url, keyring_path, app_settings):
        self.calls.append(("add_gpg_key_from_url", key_url, keyring_path))
        return True

    def add_repository(self, repo_name, repo_details, app_settings):
        self.calls.append(("add_repository", repo_name, dict(repo_details)))
        return True

    def called(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]


@pytest.fixture
def os_release_file(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(
        'NAME="Ubuntu"\n'
        'ID=ubuntu\n'
        'VERSION_ID="24.04"\n'
        "VERSION_CODENAME=noble\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def app_settings(tmp_path, os_release_file):
    return AppSettings(
        assume_yes=True,
        os_release_path=str(os_release_file),
        guard=ServiceGuardSettings(policy_path=str(tmp_path / "policy-rc.d")),
    )


@pytest.fixture
def fake_apt():
    return FakeAptManager()


@pytest.fixture
def test_logger():
    return logging.getLogger("tests")


@pytest.fixture
def run_context(app_settings, fake_apt, test_logger):
    return RunContext.create(
        app_settings,
        prompt=lambda message, default: default,
        logger=test_logger,
        apt=fake_apt,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
