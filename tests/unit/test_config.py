from wms.core.config import Settings, clear_settings_cache, get_settings


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("SELLUS_BRANCH_ID", "7")
    monkeypatch.setenv("RETRY_SCHEDULE_ENABLED", "true")

    settings = Settings()

    assert settings.SELLUS_BRANCH_ID == "7"
    assert settings.RETRY_SCHEDULE_ENABLED is True
    assert settings.RETRY_BATCH_LIMIT == 50


def test_settings_are_cached_until_cleared(monkeypatch):
    clear_settings_cache()
    monkeypatch.setenv("ZOMBIE_GRACE_HOURS", "48")
    first = get_settings()
    monkeypatch.setenv("ZOMBIE_GRACE_HOURS", "12")

    assert get_settings() is first
    assert first.ZOMBIE_GRACE_HOURS == 48

    clear_settings_cache()
    assert get_settings().ZOMBIE_GRACE_HOURS == 12
    clear_settings_cache()
