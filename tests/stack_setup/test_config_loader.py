# -*- coding: utf-8 -*-
"""
Tests for the config_loader module.
"""

import argparse

import pytest

from stack_setup.config_loader import _deep_update, load_app_settings, read_yaml_config
from stack_setup.config_models import ResolutionMode


def _cli(**overrides):
    values = {
        "assume_yes": False,
        "allow_non_root": False,
        "http_timeout": None,
        "log_level": None,
        "log_file": None,
        "components": None,
        "php_fallback_version": None,
        "policy_path": None,
        "config": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def test_deep_update_merges_nested_dictionaries():
    source = {"php": {"fallback_version": "8.3", "enabled": True}, "assume_yes": False}

    result = _deep_update(source, {"php": {"fallback_version": "8.2"}, "assume_yes": None})

    assert result == {"php": {"fallback_version": "8.2", "enabled": True}, "assume_yes": False}


def test_missing_file_uses_defaults(tmp_path):
    settings = load_app_settings(None, str(tmp_path / "absent.yaml"))

    assert settings.php.fallback_version == "8.3"
    assert settings.guard.policy_path == "/usr/sbin/policy-rc.d"
    assert settings.components[0] == "nginx"
    assert settings.ruby.version_spec.mode == ResolutionMode.LISTING_PAGE


def test_yaml_overrides_nested_settings(tmp_path):
    config_file = tmp_path / "stack-setup.yaml"
    config_file.write_text(
        "http_timeout: 5\n"
        "components: [php, git]\n"
        "php:\n"
        "  fallback_version: '8.2'\n"
        "  extension_exclusions: [gmagick, yac, swoole]\n"
        "ruby:\n"
        "  enabled: false\n",
        encoding="utf-8",
    )

    settings = load_app_settings(None, str(config_file))

    assert settings.http_timeout == 5
    assert settings.components == ["php", "git"]
    assert settings.php.fallback_version == "8.2"
    assert "swoole" in settings.php.extension_exclusions
    assert settings.php.base_suffixes[0] == ""
    assert settings.ruby.enabled is False


def test_cli_overrides_yaml(tmp_path):
    config_file = tmp_path / "stack-setup.yaml"
    config_file.write_text("php:\n  fallback_version: '8.2'\nhttp_timeout: 5\n", encoding="utf-8")

    settings = load_app_settings(
        _cli(assume_yes=True, php_fallback_version="8.1", policy_path="/tmp/policy"),
        str(config_file),
    )

    assert settings.assume_yes is True
    assert settings.php.fallback_version == "8.1"
    assert settings.guard.policy_path == "/tmp/policy"
    assert settings.http_timeout == 5


def test_environment_is_below_yaml(tmp_path, monkeypatch):
    monkeypatch.setenv("STACK_HTTP_TIMEOUT", "12")
    monkeypatch.setenv("STACK_LOG_LEVEL", "DEBUG")
    config_file = tmp_path / "stack-setup.yaml"
    config_file.write_text("http_timeout: 7\n", encoding="utf-8")

    settings = load_app_settings(None, str(config_file))

    assert settings.http_timeout == 7
    assert settings.log_level == "DEBUG"


def test_invalid_values_exit_with_configuration_error(tmp_path):
    config_file = tmp_path / "stack-setup.yaml"
    config_file.write_text("http_timeout: soon\n", encoding="utf-8")

    with pytest.raises(SystemExit, match="Configuration error"):
        load_app_settings(None, str(config_file))


@pytest.mark.parametrize("content", ["- just\n- a list\n", "key: [unclosed\n", ""])
def test_unusable_yaml_is_ignored(tmp_path, content):
    config_file = tmp_path / "stack-setup.yaml"
    config_file.write_text(content, encoding="utf-8")

    assert read_yaml_config(config_file) == {}
