import pytest

from shared.config import Settings, get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_defaults_match_documented_policy():
    s = Settings(environment="test")
    assert s.profile_retry_attempts == 10
    assert s.profile_retry_delay_seconds == 0.5
    assert s.profile_attempt_timeout_seconds == 5.0
    assert s.max_failed_login_attempts == 5
    assert s.lockout_minutes == 30
    assert s.backup_code_count == 10
    assert s.invitation_ttl_days == 7
    assert s.is_testing and not s.is_prod


def test_env_overrides(monkeypatch, fresh_settings):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("PROFILE_RETRY_ATTEMPTS", "4")
    monkeypatch.setenv("PROFILE_RETRY_DELAY_MS", "800")
    monkeypatch.setenv("LOCKOUT_MINUTES", "15")
    monkeypatch.setenv("IDENTITY_URL", "https://auth.example.test")
    monkeypatch.setenv("IDENTITY_API_KEY", "anon-key-0123456789")

    s = fresh_settings()
    assert s.environment == "staging"
    assert s.profile_retry_attempts == 4
    assert s.profile_retry_delay_seconds == 0.8
    assert s.lockout_minutes == 15
    assert s.identity_url == "https://auth.example.test"
    assert fresh_settings() is s


def test_safe_dict_masks_secrets():
    s = Settings(
        environment="test",
        identity_api_key="anon-key-0123456789",
        database_url="sqlite+aiosqlite:///./identity.db",
    )
    data = s.safe_dict()
    assert "0123456789" not in data["identity_api_key"]
    assert data["database_url"] == "<masked>"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"environment": "qa"},
        {"database_url": "mysql://db/identity"},
        {"identity_url": "ftp://auth.example.test"},
        {"profile_retry_attempts": 0},
        {"lockout_minutes": -1},
        {"log_level": "VERBOSE"},
        {"profile_retry_delay_ms": -5},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        Settings(**kwargs)


def test_non_numeric_env_value_is_rejected(monkeypatch, fresh_settings):
    monkeypatch.setenv("MAX_FAILED_LOGIN_ATTEMPTS", "five")
    with pytest.raises(ValueError):
        fresh_settings()
