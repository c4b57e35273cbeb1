"""
Centralized configuration for the identity and session core.

- Dataclass settings loaded from OS env; a .env file at the repo root is
  parsed with python-dotenv when present.
- Strong typing & validation in __post_init__.
- Immutable singleton via functools.lru_cache.
- Secrets never logged (masked).
"""

from __future__ import annotations

import functools
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, cast
from urllib.parse import urlparse

from dotenv import load_dotenv

from shared.infrastructure.observability.logger import get_logger


# ------------------------------------------------------------------------------
# .env loader
# ------------------------------------------------------------------------------
def _maybe_load_dotenv(env_path: Path) -> None:
    if env_path.exists():
        load_dotenv(dotenv_path=str(env_path), override=False)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _mask_secret(value: Optional[str]) -> str:
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return value[:2] + "…" + value[-2:]


def _get_env_str(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    v = os.getenv(key, default)
    if required and (v is None or str(v).strip() == ""):
        raise ValueError(f"Missing required env var: {key}")
    return v


def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "t", "yes", "y", "on"}


def _get_env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be an integer")


def _get_env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be a number")


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


def _validate_url(value: Optional[str], *, key: str, allowed_schemes: tuple[str, ...]) -> Optional[str]:
    if value in (None, ""):
        return None
    parsed = urlparse(value)
    if parsed.scheme not in allowed_schemes or not parsed.netloc:
        raise ValueError(f"{key} must be a valid URL with scheme in {allowed_schemes}")
    return value


def _validate_database_url(value: str, *, key: str) -> str:
    if value and not value.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        raise ValueError(f"{key} must start with postgresql+asyncpg:// or sqlite+aiosqlite://")
    return value


def _require_positive(value: float, *, key: str) -> None:
    if value <= 0:
        raise ValueError(f"{key} must be > 0")


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
EnvName = Literal["local", "dev", "staging", "prod", "test"]


@dataclass(frozen=True)
class Settings:
    # Environment
    environment: EnvName = "local"
    debug: bool = False

    # Observability
    log_level: str = "INFO"
    json_logs: bool = True

    # Backing store
    database_url: str = ""
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Hosted identity provider (GoTrue-compatible) + edge functions
    identity_url: Optional[str] = None
    identity_api_key: Optional[str] = None
    functions_url: Optional[str] = None
    http_timeout_seconds: float = 10.0

    # Audit context
    ip_lookup_url: str = "https://api.ipify.org?format=json"
    ip_lookup_timeout_seconds: float = 3.0
    audit_user_agent: str = "riskdesk-identity/0.1"

    # Profile resolution
    profile_retry_attempts: int = 10
    profile_retry_delay_ms: int = 500
    profile_attempt_timeout_seconds: float = 5.0

    # Lockout
    max_failed_login_attempts: int = 5
    lockout_minutes: int = 30

    # Second factor
    two_factor_issuer: str = "RiskDesk"
    backup_code_count: int = 10
    two_factor_challenge_ttl_seconds: int = 300

    # Invitations
    invitation_ttl_days: int = 7

    # Paths
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    # Derived flags (filled in __post_init__)
    is_prod: bool = field(init=False)
    is_testing: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "environment",
            _validate_choice(self.environment, choices=("local", "dev", "staging", "prod", "test"), key="APP_ENV"),
        )
        object.__setattr__(self, "database_url", _validate_database_url(self.database_url, key="DATABASE_URL"))

        _validate_url(self.identity_url, key="IDENTITY_URL", allowed_schemes=("http", "https"))
        _validate_url(self.functions_url, key="FUNCTIONS_URL", allowed_schemes=("http", "https"))
        _validate_url(self.ip_lookup_url, key="IP_LOOKUP_URL", allowed_schemes=("http", "https"))

        _require_positive(self.http_timeout_seconds, key="HTTP_TIMEOUT_SECONDS")
        _require_positive(self.ip_lookup_timeout_seconds, key="IP_LOOKUP_TIMEOUT_SECONDS")
        _require_positive(self.profile_retry_attempts, key="PROFILE_RETRY_ATTEMPTS")
        _require_positive(self.profile_attempt_timeout_seconds, key="PROFILE_ATTEMPT_TIMEOUT_SECONDS")
        _require_positive(self.max_failed_login_attempts, key="MAX_FAILED_LOGIN_ATTEMPTS")
        _require_positive(self.lockout_minutes, key="LOCKOUT_MINUTES")
        _require_positive(self.backup_code_count, key="BACKUP_CODE_COUNT")
        _require_positive(self.two_factor_challenge_ttl_seconds, key="TWO_FACTOR_CHALLENGE_TTL_SECONDS")
        _require_positive(self.invitation_ttl_days, key="INVITATION_TTL_DAYS")
        if self.profile_retry_delay_ms < 0:
            raise ValueError("PROFILE_RETRY_DELAY_MS must be >= 0")

        if not re.fullmatch(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL", self.log_level.strip()):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

        object.__setattr__(self, "is_prod", self.environment == "prod")
        object.__setattr__(self, "is_testing", self.environment == "test")

    @property
    def profile_retry_delay_seconds(self) -> float:
        return self.profile_retry_delay_ms / 1000.0

    # Safe dict (for debug prints without secrets)
    def safe_dict(self) -> dict:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "log_level": self.log_level,
            "json_logs": self.json_logs,
            "database_url": "<masked>" if self.database_url else "<unset>",
            "identity_url": self.identity_url or "<unset>",
            "identity_api_key": _mask_secret(self.identity_api_key),
            "functions_url": self.functions_url or "<unset>",
            "ip_lookup_url": self.ip_lookup_url,
            "profile_retry_attempts": self.profile_retry_attempts,
            "profile_retry_delay_ms": self.profile_retry_delay_ms,
            "profile_attempt_timeout_seconds": self.profile_attempt_timeout_seconds,
            "max_failed_login_attempts": self.max_failed_login_attempts,
            "lockout_minutes": self.lockout_minutes,
            "two_factor_issuer": self.two_factor_issuer,
            "backup_code_count": self.backup_code_count,
            "two_factor_challenge_ttl_seconds": self.two_factor_challenge_ttl_seconds,
            "invitation_ttl_days": self.invitation_ttl_days,
            "base_dir": str(self.base_dir),
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = get_logger(__name__)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Attempt to load .env from repo root (../.env relative to src/)
    env_file = Path(__file__).resolve().parent.parent.parent / ".env"
    _maybe_load_dotenv(env_file)

    settings = Settings(
        environment=cast(EnvName, _get_env_str("APP_ENV", "local") or "local"),
        debug=_get_env_bool("DEBUG", False),
        log_level=_get_env_str("LOG_LEVEL", "INFO") or "INFO",
        json_logs=_get_env_bool("JSON_LOGS", True),
        database_url=_get_env_str("DATABASE_URL", "") or "",
        database_pool_size=_get_env_int("DATABASE_POOL_SIZE", 5),
        database_max_overflow=_get_env_int("DATABASE_MAX_OVERFLOW", 10),
        identity_url=_get_env_str("IDENTITY_URL", None),
        identity_api_key=_get_env_str("IDENTITY_API_KEY", None),
        functions_url=_get_env_str("FUNCTIONS_URL", None),
        http_timeout_seconds=_get_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
        ip_lookup_url=_get_env_str("IP_LOOKUP_URL", "https://api.ipify.org?format=json")
        or "https://api.ipify.org?format=json",
        ip_lookup_timeout_seconds=_get_env_float("IP_LOOKUP_TIMEOUT_SECONDS", 3.0),
        audit_user_agent=_get_env_str("AUDIT_USER_AGENT", "riskdesk-identity/0.1") or "riskdesk-identity/0.1",
        profile_retry_attempts=_get_env_int("PROFILE_RETRY_ATTEMPTS", 10),
        profile_retry_delay_ms=_get_env_int("PROFILE_RETRY_DELAY_MS", 500),
        profile_attempt_timeout_seconds=_get_env_float("PROFILE_ATTEMPT_TIMEOUT_SECONDS", 5.0),
        max_failed_login_attempts=_get_env_int("MAX_FAILED_LOGIN_ATTEMPTS", 5),
        lockout_minutes=_get_env_int("LOCKOUT_MINUTES", 30),
        two_factor_issuer=_get_env_str("TWO_FACTOR_ISSUER", "RiskDesk") or "RiskDesk",
        backup_code_count=_get_env_int("BACKUP_CODE_COUNT", 10),
        two_factor_challenge_ttl_seconds=_get_env_int("TWO_FACTOR_CHALLENGE_TTL_SECONDS", 300),
        invitation_ttl_days=_get_env_int("INVITATION_TTL_DAYS", 7),
    )

    _logger.info("Settings loaded", settings=settings.safe_dict())
    return settings
