import pytest

from provisioning.orchestrator import ProvisioningOrchestrator
from provisioning.registry import InstallerRegistry


@pytest.fixture(autouse=True)
def no_version_reporting(mocker):
    return mocker.patch("provisioning.base_installer.report_tool_version")


def _steps(run_context):
    return [(o.label, o.success) for o in run_context.ledger]


def test_component_modules_are_registered(run_context):
    ProvisioningOrchestrator(run_context)

    assert set(InstallerRegistry.names()) >= {
        "nginx",
        "mysql",
        "php",
        "git",
        "docker",
        "postgres",
        "dotnet",
        "neovim",
        "ruby",
    }


def test_base_tooling_failure_is_fatal(run_context, fake_apt, capsys):
    fake_apt.failing = {"curl"}

    exit_code = ProvisioningOrchestrator(run_context).run()

    assert exit_code == 1
    assert _steps(run_context) == [("Base tooling", False)]
    out = capsys.readouterr().out
    assert "Succeeded:\n  - None" in out
    assert "Failed:\n  - Base tooling" in out


def test_unknown_codename_is_fatal(mocker, run_context):
    mocker.patch("provisioning.orchestrator.get_os_codename", return_value=None)

    exit_code = ProvisioningOrchestrator(run_context).run()

    assert exit_code == 1
    assert _steps(run_context) == [
        ("Base tooling", True),
        ("OS identification", False),
    ]


def test_optional_failure_still_exits_zero(run_context, fake_apt, capsys):
    run_context.app_settings.components = ["dotnet"]
    fake_apt.index = []

    exit_code = ProvisioningOrchestrator(run_context).run()

    assert exit_code == 0
    assert _steps(run_context) == [
        ("Base tooling", True),
        ("OS identification", True),
        (".NET SDK repository", True),
        ("Package index refresh", True),
        (".NET SDK", False),
        ("Cleanup", True),
    ]
    assert run_context.codename == "noble"
    assert run_context.architecture == "amd64"
    assert "Failed:\n  - .NET SDK" in capsys.readouterr().out


def test_repository_definition_uses_detected_os(run_context, fake_apt):
    run_context.app_settings.components = ["dotnet"]
    fake_apt.index = ["dotnet-sdk-8.0"]

    ProvisioningOrchestrator(run_context).run()

    (_, repo_name, details), = fake_apt.called("add_repository")
    assert repo_name == "microsoft-prod"
    assert details["URIs"] == "https://packages.microsoft.com/ubuntu/24.04/prod"
    assert details["Suites"] == "noble"
    assert details["Architectures"] == "amd64"
    assert details["Signed-By"] == "/etc/apt/keyrings/microsoft.gpg"
    assert ("install", ("dotnet-sdk-8.0",)) in fake_apt.calls


def test_declined_prompts_skip_repositories_refresh_and_installs(run_context, fake_apt):
    run_context.prompt = lambda message, default: False
    run_context.app_settings.components = ["git", "nginx"]

    exit_code = ProvisioningOrchestrator(run_context).run()

    assert exit_code == 0
    assert _steps(run_context) == [
        ("Base tooling", True),
        ("OS identification", True),
        ("Cleanup", True),
    ]
    assert fake_apt.called("update") == [("update",)]
    assert fake_apt.called("add_ppa") == []


def test_ppa_repository_is_added_before_refresh(run_context, fake_apt):
    run_context.app_settings.components = ["git"]
    answers = {}

    def prompt(message, default):
        answers[message] = default
        return message.startswith("Add")

    run_context.prompt = prompt

    ProvisioningOrchestrator(run_context).run()

    assert fake_apt.called("add_ppa") == [("add_ppa", "ppa:git-core/ppa")]
    assert fake_apt.called("update") == [("update",), ("update",)]
    assert all(default is True for default in answers.values())
    assert run_context.repositories_added == ["git"]


def test_unknown_components_are_ignored(run_context, caplog):
    run_context.app_settings.components = ["cobol", "git"]

    installers = ProvisioningOrchestrator(run_context).selected_installers()

    assert [i.name for i in installers] == ["git"]
    assert "cobol" in caplog.text


def test_disabled_components_are_not_offered(run_context):
    run_context.app_settings.components = ["git", "ruby"]
    run_context.app_settings.ruby.enabled = False

    installers = ProvisioningOrchestrator(run_context).selected_installers()

    assert [i.name for i in installers] == ["git"]


def test_components_run_in_configured_order(run_context):
    run_context.app_settings.components = ["ruby", "git", "nginx", "git"]

    installers = ProvisioningOrchestrator(run_context).selected_installers()

    assert [i.name for i in installers] == ["ruby", "git", "nginx"]
