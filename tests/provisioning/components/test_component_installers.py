import subprocess

import pytest

from provisioning.components.docker.docker_installer import DockerInstaller
from provisioning.components.dotnet.dotnet_installer import DotnetInstaller
from provisioning.components.git.git_installer import GitInstaller
from provisioning.components.mysql.mysql_installer import MysqlInstaller
from provisioning.components.neovim.neovim_installer import NeovimInstaller
from provisioning.components.nginx.nginx_installer import NginxInstaller
from provisioning.components.postgres.postgres_installer import PostgresInstaller
from provisioning.components.ruby.ruby_installer import RubyInstaller
from provisioning.exceptions import CandidateNotFoundError, ConflictRemediationError
from provisioning.version_resolver import ResolvedCandidate


@pytest.fixture(autouse=True)
def no_version_reporting(mocker):
    return mocker.patch("provisioning.base_installer.report_tool_version")


@pytest.fixture
def guard_states(run_context, fake_apt):
    """Record whether the service-start guard was held for each install."""
    states = []
    original_install = fake_apt.install

    def install(packages, app_settings, **kwargs):
        states.append(run_context.guard.is_held)
        return original_install(packages, app_settings, **kwargs)

    fake_apt.install = install
    return states


def test_nginx_removes_apache_before_guarded_install(mocker, run_context, fake_apt, guard_states):
    fake_apt.statuses = {"apache2": "ii ", "libapache2-mod-php8.3": "ii "}
    mocker.patch("provisioning.conflict_remediation.stop_and_disable_service")
    mocker.patch("provisioning.conflict_remediation.remove_paths")
    enable = mocker.patch(
        "provisioning.components.nginx.nginx_installer.enable_service",
        return_value=True,
    )

    assert NginxInstaller(run_context).install() is True

    assert "apache2" not in fake_apt.statuses
    assert fake_apt.statuses["nginx"] == "ii "
    assert guard_states == [True]
    assert enable.call_args.args[0] == "nginx"


def test_nginx_aborts_when_apache_survives(mocker, run_context, fake_apt):
    fake_apt.statuses = {"apache2": "ii "}
    fake_apt.stubborn = {"apache2"}
    mocker.patch("provisioning.conflict_remediation.stop_and_disable_service")
    mocker.patch("provisioning.conflict_remediation.remove_paths")

    with pytest.raises(ConflictRemediationError):
        NginxInstaller(run_context).install()

    assert fake_apt.called("install") == []


def test_mysql_fails_when_service_cannot_start(mocker, run_context, fake_apt, guard_states):
    mocker.patch(
        "provisioning.components.mysql.mysql_installer.enable_service",
        return_value=False,
    )

    assert MysqlInstaller(run_context).install() is False
    assert guard_states == [True]
    assert fake_apt.called("install") == [
        ("install", ("mysql-server", "mysql-client", "mysql-shell"))
    ]


def test_docker_replaces_distribution_packages(mocker, run_context, fake_apt, guard_states):
    fake_apt.statuses = {"docker.io": "ii ", "containerd": "ii ", "runc": "ii "}
    stop = mocker.patch("provisioning.conflict_remediation.stop_and_disable_service")
    mocker.patch("provisioning.conflict_remediation.remove_paths")
    mocker.patch(
        "provisioning.components.docker.docker_installer.enable_service",
        return_value=True,
    )

    assert DockerInstaller(run_context).install() is True

    assert "docker.io" not in fake_apt.statuses
    assert fake_apt.statuses["docker-ce"] == "ii "
    assert [c.args[0] for c in stop.call_args_list] == ["docker", "containerd"]
    assert guard_states == [True]


def test_git_installs_unguarded_and_enables_lfs(mocker, run_context, fake_apt, guard_states):
    mocker.patch(
        "provisioning.components.git.git_installer.command_exists", return_value=True
    )
    run = mocker.patch("provisioning.components.git.git_installer.run_elevated_command")

    assert GitInstaller(run_context).install() is True

    assert guard_states == [False]
    assert run.call_args.args[0] == ["git", "lfs", "install", "--system"]


def test_git_lfs_failure_does_not_fail_the_step(mocker, run_context):
    mocker.patch(
        "provisioning.components.git.git_installer.command_exists", return_value=True
    )
    mocker.patch(
        "provisioning.components.git.git_installer.run_elevated_command",
        side_effect=subprocess.CalledProcessError(1, ["git", "lfs"]),
    )

    assert GitInstaller(run_context).install() is True


def test_postgres_installs_newest_major_with_matching_client(mocker, run_context, fake_apt):
    fake_apt.index = ["postgresql-14", "postgresql-16", "postgresql-16.2", "postgresql-client-16"]
    enable = mocker.patch(
        "provisioning.components.postgres.postgres_installer.enable_service",
        return_value=True,
    )

    assert PostgresInstaller(run_context).install() is True

    assert fake_apt.called("install") == [
        ("install", ("postgresql-16", "postgresql-client-16"))
    ]
    assert enable.call_args.args[0] == "postgresql"


def test_postgres_without_candidate_raises(run_context, fake_apt):
    fake_apt.index = ["postgresql-common"]

    with pytest.raises(CandidateNotFoundError):
        PostgresInstaller(run_context).install()

    assert fake_apt.called("install") == []


def test_dotnet_installs_newest_sdk(run_context, fake_apt):
    fake_apt.index = ["dotnet-sdk-8.0", "dotnet-sdk-10.0", "dotnet-sdk-9.0"]

    assert DotnetInstaller(run_context).install() is True
    assert fake_apt.called("install") == [("install", ("dotnet-sdk-10.0",))]
    assert run_context.resolved["dotnet"].version == "10.0"


def test_neovim_extracts_release_and_links_binary(mocker, run_context):
    run_context.architecture = "amd64"
    candidate = ResolvedCandidate(
        component="Neovim",
        identifier="https://example.invalid/nvim-linux-x86_64.tar.gz",
        version="v0.11.0",
        evidence=(),
    )
    mocker.patch.object(run_context.resolver, "resolve", return_value=candidate)
    download = mocker.patch.object(
        run_context.resolver, "download_release", return_value=candidate.identifier
    )
    run = mocker.patch(
        "provisioning.components.neovim.neovim_installer.run_elevated_command"
    )

    assert NeovimInstaller(run_context).install() is True

    download.assert_called_once()
    commands = [c.args[0] for c in run.call_args_list]
    assert commands[0] == ["rm", "-rf", "/opt/nvim"]
    assert commands[2][:2] == ["tar", "-xzf"]
    assert "--strip-components=1" in commands[2]
    assert commands[-1] == ["ln", "-sfn", "/opt/nvim/bin/nvim", "/usr/local/bin/nvim"]


def test_neovim_resolves_the_asset_for_the_host_architecture(mocker, run_context):
    run_context.architecture = "arm64"
    resolve = mocker.patch.object(
        run_context.resolver, "resolve", side_effect=CandidateNotFoundError("Neovim", "offline")
    )

    with pytest.raises(CandidateNotFoundError):
        NeovimInstaller(run_context).install()

    spec = resolve.call_args.args[0]
    assert spec.asset_pattern == r"nvim-linux-arm64\.tar\.gz"
    assert spec.latest_url.endswith("/nvim-linux-arm64.tar.gz")
    assert spec.stable_url.endswith("/download/stable/nvim-linux-arm64.tar.gz")


def test_neovim_without_release_build_for_architecture_fails(mocker, run_context):
    run_context.architecture = "riscv64"
    resolve = mocker.patch.object(run_context.resolver, "resolve")

    with pytest.raises(CandidateNotFoundError, match="riscv64"):
        NeovimInstaller(run_context).install()

    resolve.assert_not_called()


def test_ruby_builds_from_resolved_archive(mocker, run_context, fake_apt):
    url = "https://cache.ruby-lang.org/pub/ruby/3.4/ruby-3.4.1.tar.gz"
    mocker.patch.object(
        run_context.resolver,
        "resolve",
        return_value=ResolvedCandidate(
            component="Ruby", identifier=url, version="3.4.1", evidence=()
        ),
    )
    download = mocker.patch("common.http_utils.download_file")
    run = mocker.patch("provisioning.components.ruby.ruby_installer.run_elevated_command")

    assert RubyInstaller(run_context).install() is True

    assert download.call_args.args[:2] == (url, "/usr/local/src/ruby-3.4.1.tar.gz")
    assert "build-essential" in fake_apt.called("install")[0][1]
    commands = [c.args[0] for c in run.call_args_list]
    assert commands[0] == ["tar", "-xzf", "/usr/local/src/ruby-3.4.1.tar.gz", "-C", "/usr/local/src"]
    assert commands[1][0] == "./configure"
    assert commands[-1] == ["make", "install"]
    assert run.call_args_list[-1].kwargs["cwd"] == "/usr/local/src/ruby-3.4.1"
