from services.settings import SchedulingSettings


def test_defaults_when_environment_empty(monkeypatch):
    for key in (
        "SCHEDULING_TIMEZONE",
        "CONFLICT_SOURCE_TIMEOUT_SECONDS",
        "SLOT_SEARCH_DAYS",
        "GOOGLE_CLIENT_ID",
        "GOOGLE_REFRESH_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)

    settings = SchedulingSettings.from_env()

    assert settings.timezone == "America/New_York"
    assert settings.source_timeout_seconds == 10.0
    assert settings.slot_search_days == 7
    assert settings.calendar_configured is False


def test_values_read_from_environment(monkeypatch):
    monkeypatch.setenv("SCHEDULING_TIMEZONE", "Europe/London")
    monkeypatch.setenv("CONFLICT_SOURCE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SLOT_MAX_SUGGESTIONS", "3")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("GOOGLE_REFRESH_TOKEN", "rt")

    settings = SchedulingSettings.from_env()

    assert settings.tz.zone == "Europe/London"
    assert settings.source_timeout_seconds == 2.5
    assert settings.slot_max_suggestions == 3
    assert settings.calendar_configured is True


def test_blank_credentials_mean_unconfigured(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "")
    monkeypatch.setenv("GOOGLE_REFRESH_TOKEN", "")
    assert SchedulingSettings.from_env().calendar_configured is False
