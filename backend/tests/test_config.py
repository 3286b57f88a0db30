from __future__ import annotations

import pytest

from leave_accrual.config import Settings, get_settings, reset_settings
from leave_accrual.services.cycle import local_now


def test_defaults() -> None:
    settings = Settings(_env_file=None)  # type: ignore[call-arg]
    assert settings.app_name == "HR Leave Accrual"
    assert settings.worker_interval_seconds == 86400


def test_settings_cached() -> None:
    assert get_settings() is get_settings()


def test_environment_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKER_INTERVAL_SECONDS", "3600")
    monkeypatch.setenv("TIMEZONE", "Asia/Kolkata")
    reset_settings()

    settings = get_settings()
    assert settings.worker_interval_seconds == 3600
    assert settings.timezone == "Asia/Kolkata"


def test_local_now_is_naive() -> None:
    assert local_now().tzinfo is None
