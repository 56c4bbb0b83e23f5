"""Tests for configuration loading."""

from pathlib import Path

import pytest

from vakit_push.config import AppConfig
from vakit_push.domain.models import DEFAULT_LOCATION
from vakit_push.infrastructure.webpush_sender import WebPushSender


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every VAKIT_PUSH_ variable."""
    import os

    for name in list(os.environ):
        if name.startswith("VAKIT_PUSH_"):
            monkeypatch.delenv(name)
    return monkeypatch


class TestAppConfig:
    """AppConfig tests."""

    def test_defaults(self, clean_env) -> None:
        """Environment without overrides gives the documented defaults."""
        config = AppConfig.from_env()

        assert config.port == 8080
        assert config.late_tolerance_minutes == 5
        assert config.too_late_minutes == 15
        assert config.scheduler_enabled is True
        assert config.default_location == DEFAULT_LOCATION
        assert not config.push_configured

    def test_overrides(self, clean_env, tmp_path) -> None:
        """Prefixed variables override defaults."""
        clean_env.setenv("VAKIT_PUSH_PORT", "9000")
        clean_env.setenv("VAKIT_PUSH_STORE_PATH", str(tmp_path / "subs.json"))
        clean_env.setenv("VAKIT_PUSH_TOO_LATE_MINUTES", "30")
        clean_env.setenv("VAKIT_PUSH_SCHEDULER_ENABLED", "false")
        clean_env.setenv("VAKIT_PUSH_VAPID_PUBLIC_KEY", "pub")
        clean_env.setenv("VAKIT_PUSH_VAPID_PRIVATE_KEY", "priv")
        clean_env.setenv("VAKIT_PUSH_DEFAULT_TZ", "Europe/Istanbul")
        clean_env.setenv("VAKIT_PUSH_DEFAULT_COUNTRY", "tr")

        config = AppConfig.from_env()

        assert config.port == 9000
        assert config.store_path == Path(tmp_path / "subs.json")
        assert config.too_late_minutes == 30
        assert config.scheduler_enabled is False
        assert config.push_configured
        assert config.default_location.timezone == "Europe/Istanbul"
        assert config.default_location.country_code == "TR"

    @pytest.mark.parametrize(("value", "expected"), [("1", True), ("yes", True), ("off", False), ("", False)])
    def test_bool_parsing(self, clean_env, value: str, expected: bool) -> None:
        """Boolean flags accept common spellings."""
        clean_env.setenv("VAKIT_PUSH_SCHEDULER_ENABLED", value)
        assert AppConfig.from_env().scheduler_enabled is expected

    def test_millisecond_properties(self) -> None:
        """Minute settings are exposed in milliseconds."""
        config = AppConfig(late_tolerance_minutes=5, too_late_minutes=15)
        assert config.late_tolerance_ms == 300_000
        assert config.too_late_ms == 900_000

    @pytest.mark.parametrize(
        ("private_key", "subject", "expected"),
        [("priv", "mailto:a@b.c", True), ("", "mailto:a@b.c", False), ("priv", " ", False)],
    )
    def test_push_configured_matches_sender(self, private_key: str, subject: str, expected: bool) -> None:
        """Config and sender agree on what a usable VAPID setup is."""
        config = AppConfig(vapid_private_key=private_key, vapid_subject=subject)
        sender = WebPushSender(config.vapid_private_key, config.vapid_subject)

        assert config.push_configured is expected
        assert sender.is_configured is expected
