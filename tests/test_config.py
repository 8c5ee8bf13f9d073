"""Tests for config loading and credential checks."""

from unittest.mock import patch

from nodey.config import get_config, missing_credentials


class TestGetConfig:
    def test_shipped_defaults(self):
        config = get_config()
        assert config["max_revisions"] == 3
        assert config["log_window"] == 10
        assert set(config["required_env"]) == {"GOOGLE_API_KEY", "ANTHROPIC_API_KEY"}


class TestMissingCredentials:
    @patch("nodey.config._config", {"required_env": ["GOOGLE_API_KEY", "ANTHROPIC_API_KEY"]})
    def test_all_present(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a")
        assert missing_credentials() == []

    @patch("nodey.config._config", {"required_env": ["GOOGLE_API_KEY", "ANTHROPIC_API_KEY"]})
    def test_reports_unset_and_blank(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "  ")
        assert missing_credentials() == ["GOOGLE_API_KEY", "ANTHROPIC_API_KEY"]

    @patch("nodey.config._config", {})
    def test_nothing_required(self):
        assert missing_credentials() == []
