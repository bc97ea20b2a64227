# Overview: Credential hashing and verification.

"""
Credential Service

WHY: the remote store does no authentication of its own; the client checks
credentials against the user rows in the snapshot.

FORMATS ACCEPTED (stored in the user's `password` cell):
- bcrypt ("$2a$"/"$2b$"/"$2y$" prefix): written for every new credential
- legacy PBKDF2-SHA256: 64 hex chars, 100 000 iterations, fixed system salt
- legacy plain text: compared in constant time

SECURITY NOTES:
- A blank stored credential never matches (account cannot log in)
- New passwords must meet the minimum length before hashing
"""

from __future__ import annotations

import hashlib
import hmac
import re

import bcrypt

from ..exceptions import ValidationError


LEGACY_PBKDF2_ITERATIONS = 100_000
_HEX_64 = re.compile(r"^[0-9a-fA-F]{64}$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str, min_length: int = 8) -> None:
    if not password or not password.strip():
        raise PasswordValidationError("Password must not be blank")
    if len(password) < min_length:
        raise PasswordValidationError(f"Password must be at least {min_length} characters long")


def hash_password(password: str, min_length: int = 8) -> str:
    """Hash password using bcrypt with cost factor 12."""
    validate_password_strength(password, min_length=min_length)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def legacy_pbkdf2_hex(password: str, salt: str) -> str:
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        LEGACY_PBKDF2_ITERATIONS,
        dklen=32,
    )
    return derived.hex()


def is_bcrypt_hash(stored: str) -> bool:
    return stored.startswith(("$2a$", "$2b$", "$2y$"))


def verify_password(password: str, stored: str, *, legacy_salt: str) -> bool:
    """Returns True if password matches the stored credential."""
    stored = (stored or "").strip()
    password = (password or "").strip()
    if not stored or not password:
        return False

    if is_bcrypt_hash(stored):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            return False

    if _HEX_64.match(stored):
        candidate = legacy_pbkdf2_hex(password, legacy_salt)
        return hmac.compare_digest(candidate.lower(), stored.lower())

    return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))
