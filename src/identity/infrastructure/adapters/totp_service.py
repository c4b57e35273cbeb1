"""
TOTP Service - Second factor secrets, codes and backup codes
External adapter around pyotp
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime
from typing import Optional

import pyotp

from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

_BACKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def normalize_backup_code(code: str) -> str:
    return code.strip().upper().replace("-", "").replace(" ", "")


def hash_backup_code(code: str) -> str:
    """SHA-256 digest of the normalized code; only digests are persisted."""
    return hashlib.sha256(normalize_backup_code(code).encode("utf-8")).hexdigest()


class TotpService:
    """
    RFC 6238 time-based codes (30 s step, 6 digits).

    verify() accepts the current step and one step either side.
    """

    def __init__(self, issuer: str, *, valid_window: int = 1) -> None:
        self._issuer = issuer
        self._valid_window = valid_window

    def generate_secret(self) -> str:
        return pyotp.random_base32()

    def provisioning_uri(self, secret: str, account_name: str) -> str:
        return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=self._issuer)

    def current_code(self, secret: str, for_time: Optional[datetime] = None) -> str:
        totp = pyotp.TOTP(secret)
        return totp.at(for_time) if for_time else totp.now()

    def verify(self, secret: str, code: str, for_time: Optional[datetime] = None) -> bool:
        candidate = code.strip().replace(" ", "")
        if not candidate.isdigit():
            return False
        return pyotp.TOTP(secret).verify(candidate, for_time=for_time, valid_window=self._valid_window)

    def generate_backup_codes(self, count: int) -> tuple[str, ...]:
        """Plaintext codes in XXXX-XXXX form, shown to the user once."""
        codes: list[str] = []
        while len(codes) < count:
            raw = "".join(secrets.choice(_BACKUP_CODE_ALPHABET) for _ in range(8))
            code = f"{raw[:4]}-{raw[4:]}"
            if code not in codes:
                codes.append(code)
        return tuple(codes)
