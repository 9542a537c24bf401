"""
Tests for run input validation, settings and security helpers.
"""

import re

import pytest

from scrape_sobha.sobha_config import (
    ScrapeConfig,
    SobhaSettings,
    load_input_from_env,
    validate_input,
)
from scrape_sobha.sobha_errors import ValidationError
from scrape_sobha.sobha_security import generate_session_id, mask_sensitive, sanitize_input


class TestValidateInput:
    """Run input validation collects every violation before failing."""

    @pytest.mark.unit
    def test_defaults_applied(self):
        config = validate_input({"email": "agent@example.com", "password": "pw"})

        assert isinstance(config, ScrapeConfig)
        assert config.scrape_mode == "bulk"
        assert config.filters == {}
        assert config.specific_unit is None
        assert config.max_results == 1000
        assert config.request_delay == 2.0
        assert config.retry_attempts == 3
        assert config.enable_stealth is True
        assert config.download_documents is False
        assert config.parallel_requests == 2

    @pytest.mark.unit
    def test_invalid_email_and_empty_password_both_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input({"email": "not-an-email", "password": ""})

        violations = exc_info.value.violations
        assert "Email must be a valid email address" in violations
        assert "Password is required and must be a non-empty string" in violations
        assert len(violations) == 2
        assert str(exc_info.value).startswith("Input validation failed: ")

    @pytest.mark.unit
    def test_missing_input(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_input({})
        assert len(exc_info.value.violations) == 2

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [["agent@example.com", "pw"], "agent@example.com", 42])
    def test_non_object_input_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_input(raw)
        assert exc_info.value.violations[0].startswith("Input must be an object")

    @pytest.mark.unit
    @pytest.mark.parametrize("key,value", [
        ("maxResults", 0),
        ("maxResults", 10001),
        ("maxResults", "50"),
        ("requestDelay", 0.1),
        ("requestDelay", 11),
        ("retryAttempts", 0),
        ("retryAttempts", 6),
        ("parallelRequests", 0),
        ("scrapeMode", "everything"),
        ("enableStealth", "yes"),
        ("filters", ["tower-a"]),
    ])
    def test_out_of_range_values_rejected(self, key, value):
        raw = {"email": "agent@example.com", "password": "pw", key: value}
        with pytest.raises(ValidationError) as exc_info:
            validate_input(raw)
        assert len(exc_info.value.violations) == 1

    @pytest.mark.unit
    def test_boundaries_accepted(self):
        config = validate_input({
            "email": "agent@example.com",
            "password": "pw",
            "maxResults": 10000,
            "requestDelay": 0.5,
            "retryAttempts": 5,
        })
        assert config.max_results == 10000
        assert config.request_delay == 0.5
        assert config.retry_attempts == 5

    @pytest.mark.unit
    def test_email_lowercased_and_sanitized(self):
        config = validate_input({"email": "  Agent'@Example.COM ", "password": "pw"})
        assert config.email == "agent@example.com"

    @pytest.mark.unit
    def test_stealth_can_be_disabled(self):
        config = validate_input({"email": "agent@example.com", "password": "pw", "enableStealth": False})
        assert config.enable_stealth is False

    @pytest.mark.unit
    def test_config_is_immutable(self, scrape_config):
        with pytest.raises(Exception):
            scrape_config.max_results = 5

    @pytest.mark.unit
    def test_log_dict_hides_credentials(self, scrape_config):
        data = scrape_config.to_log_dict()
        assert "password" not in data
        assert data["email"].startswith("agen")
        assert "example.com" not in data["email"]
        assert data["maxResults"] == 50


class TestSettings:

    @pytest.mark.unit
    def test_projects_url_derived_from_login_url(self):
        settings = SobhaSettings()
        assert settings.portal.projects_url == "https://www.sobhapartnerportal.com/partnerportal/s/sobha-project"

    @pytest.mark.unit
    def test_from_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SOBHA_LOGIN_URL", "https://staging.example.com/partnerportal/s/")
        monkeypatch.setenv("SOBHA_HEADLESS", "false")
        monkeypatch.setenv("SOBHA_DATASET_DIR", str(tmp_path))
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = SobhaSettings.from_env()

        assert settings.portal.projects_url == "https://staging.example.com/partnerportal/s/sobha-project"
        assert settings.browser.headless is False
        assert settings.dataset_dir == str(tmp_path)
        assert settings.log_level == "DEBUG"

    @pytest.mark.unit
    def test_settings_instances_do_not_share_state(self):
        first = SobhaSettings()
        first.browser.headless = False
        assert SobhaSettings().browser.headless is True

    @pytest.mark.unit
    def test_summary(self):
        summary = SobhaSettings().summary()
        assert summary["browser"]["viewport"] == "1366x768"
        assert summary["portal"]["navigation_timeout_ms"] == 60000

    @pytest.mark.unit
    def test_credentials_from_env(self, monkeypatch):
        monkeypatch.setenv("SOBHA_EMAIL", "env@example.com")
        monkeypatch.setenv("SOBHA_PASSWORD", "env-pass")
        assert load_input_from_env() == {"email": "env@example.com", "password": "env-pass"}


class TestSecurityHelpers:

    @pytest.mark.unit
    def test_session_id_format_and_uniqueness(self):
        ids = {generate_session_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(re.fullmatch(r"[0-9a-f]{16}", session_id) for session_id in ids)

    @pytest.mark.unit
    def test_mask_sensitive(self):
        assert mask_sensitive("agent@example.com") == "agen" + "*" * 13
        assert mask_sensitive("abc") == "***"
        assert mask_sensitive("") == "***"
        assert mask_sensitive(None) == "***"

    @pytest.mark.unit
    def test_sanitize_input(self):
        assert sanitize_input(" <b>name</b>; ") == "bname/b"
        assert sanitize_input("o'brien-2/b") == "obrien-2/b"
