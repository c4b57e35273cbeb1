"""
Password Service - Hashing and Verification
External adapter for password operations
"""
from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


class PasswordService:
    """
    Password hashing service using Argon2id.

    Used by the in-process identity provider; hosted providers keep their
    own hashes.
    """

    def __init__(self) -> None:
        self._hasher = PasswordHasher(
            time_cost=2,  # iterations
            memory_cost=65536,  # 64 MB
            parallelism=4,  # threads
            hash_len=32,  # output length
            salt_len=16,  # salt length
        )

    def hash_password(self, plain_password: str) -> str:
        """
        Hash a plain text password.

        Raises:
            ValueError: If password is too short
        """
        if len(plain_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return self._hasher.hash(plain_password)

    def verify_password(self, plain_password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, plain_password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            logger.warning("Password hash could not be verified", error=str(exc))
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        return self._hasher.check_needs_rehash(password_hash)
