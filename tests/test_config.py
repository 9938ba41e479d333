"""Tests for config loading."""

import argparse

import pytest
import yaml

from logmailer.config import DEFAULT_TEMPLATE, Config, load_config, load_yaml_config

YAML_DATA = {
    "targets": {
        "PROCESS_LOG_STDERR": ["api", "worker"],
        "PROCESS_LOG_STDOUT": "api, web",
    },
    "timeout": 12,
    "smtp": {"host": "smtp.example.com", "port": 587, "starttls": True},
    "mail": {"from": "alerts@example.com", "to": ["ops@example.com"], "subject": "prod"},
}

ENV_VARS = (
    "ERROR_CATEGORY", "BROADCAST_MARKER", "DEBOUNCE_SEC", "SMTP_HOST", "SMTP_PORT",
    "SMTP_STARTTLS", "SMTP_SSL", "SMTP_TIMEOUT", "SMTP_USER", "SMTP_PASSWORD",
    "MAIL_FROM", "MAIL_TO", "MAIL_SUBJECT", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _args(template=None) -> argparse.Namespace:
    return argparse.Namespace(config=None, template=template)


class TestLoadYaml:
    def test_no_path_returns_empty(self):
        assert load_yaml_config(None) == {}

    def test_missing_file_returns_empty(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "missing.yml")) == {}

    def test_reads_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(yaml.dump(YAML_DATA))
        assert load_yaml_config(str(path))["timeout"] == 12

    def test_empty_file_returns_empty(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_yaml_config(str(path)) == {}


class TestLoadConfig:
    def test_yaml_values(self):
        config = load_config(_args(), YAML_DATA)
        assert config.targets == {
            "PROCESS_LOG_STDERR": ("api", "worker"),
            "PROCESS_LOG_STDOUT": ("api", "web"),
        }
        assert list(config.targets) == ["PROCESS_LOG_STDERR", "PROCESS_LOG_STDOUT"]
        assert config.debounce_sec == 12.0
        assert config.smtp_host == "smtp.example.com"
        assert config.smtp_port == 587
        assert config.smtp_starttls is True
        assert config.mail_to == ("ops@example.com",)
        assert config.mail_subject == "prod"

    def test_defaults(self):
        config = load_config(_args(), {"targets": {"PROCESS_LOG_STDERR": ["api"]}, "mail": {"to": "a@b.c"}})
        assert config.error_category == "PROCESS_LOG_STDERR"
        assert config.broadcast_marker == "BROADCST:EMAIL"
        assert config.debounce_sec == Config.debounce_sec
        assert config.template_path == DEFAULT_TEMPLATE
        assert config.smtp_port == 25
        assert config.smtp_user == ""

    def test_env_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("DEBOUNCE_SEC", "2.5")
        monkeypatch.setenv("SMTP_HOST", "relay.internal")
        monkeypatch.setenv("SMTP_STARTTLS", "false")
        monkeypatch.setenv("MAIL_TO", "a@example.com,b@example.com")
        monkeypatch.setenv("SMTP_PASSWORD", "hunter2")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = load_config(_args(), YAML_DATA)
        assert config.debounce_sec == 2.5
        assert config.smtp_host == "relay.internal"
        assert config.smtp_starttls is False
        assert config.mail_to == ("a@example.com", "b@example.com")
        assert config.smtp_password == "hunter2"
        assert config.log_level == "DEBUG"

    def test_cli_template_wins(self):
        config = load_config(_args(template="/etc/mail.j2"), {**YAML_DATA, "template": "/srv/t.j2"})
        assert config.template_path == "/etc/mail.j2"

    def test_config_is_frozen(self):
        config = load_config(_args(), YAML_DATA)
        with pytest.raises(AttributeError):
            config.debounce_sec = 1.0


class TestValidation:
    def test_requires_targets(self):
        with pytest.raises(ValueError, match="No targets"):
            load_config(_args(), {"mail": {"to": "a@b.c"}})

    def test_error_category_must_be_targeted(self, monkeypatch):
        monkeypatch.setenv("ERROR_CATEGORY", "PROCESS_STATE_FATAL")
        with pytest.raises(ValueError, match="PROCESS_STATE_FATAL"):
            load_config(_args(), YAML_DATA)

    def test_requires_recipients(self):
        with pytest.raises(ValueError, match="recipients"):
            load_config(_args(), {"targets": {"PROCESS_LOG_STDERR": ["api"]}})

    def test_debounce_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("DEBOUNCE_SEC", "0")
        with pytest.raises(ValueError, match="Debounce"):
            load_config(_args(), YAML_DATA)
