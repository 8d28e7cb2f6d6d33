"""Password hashing, token generation and input validation.

Credentials are stored as ``"<salt>:<hash>"`` where the salt is 16 random
bytes hex-encoded and the hash is a 256-bit PBKDF2-HMAC-SHA256 digest,
hex-encoded. The salt is fed to PBKDF2 as the UTF-8 bytes of its hex string,
so existing stored credentials keep verifying.
"""

import hashlib
import hmac
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from config import PBKDF2_ITERATIONS, PBKDF2_KEY_BYTES, PBKDF2_SALT_BYTES

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32

PASSWORD_MIN_LEN = 8

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
_HEX_RE = re.compile(r"^[0-9a-f]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of an input validation check."""

    valid: bool
    message: Optional[str] = None


def _derive(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_BYTES,
    )
    return digest.hex()


def hash_password(password: str) -> str:
    """Hash a plain-text password for storage.

    Args:
        password: Plain text password.

    Returns:
        ``salt:hash`` string; a new salt is drawn on every call.
    """
    salt = secrets.token_hex(PBKDF2_SALT_BYTES)
    return f"{salt}:{_derive(password, salt)}"


def verify_password(password: str, stored: str) -> bool:
    """Verify a plain password against a stored ``salt:hash`` credential.

    Malformed stored values fail closed: they are logged and the function
    returns False instead of raising.

    Args:
        password: Candidate plain text password.
        stored: Credential previously produced by hash_password.

    Returns:
        True if the password matches, False otherwise.
    """
    if not isinstance(stored, str) or stored.count(":") != 1:
        logger.warning("Stored credential is malformed (missing delimiter)")
        return False

    salt, expected = stored.split(":")
    if (
        len(salt) != PBKDF2_SALT_BYTES * 2
        or len(expected) != PBKDF2_KEY_BYTES * 2
        or not _HEX_RE.fullmatch(salt)
        or not _HEX_RE.fullmatch(expected)
    ):
        logger.warning("Stored credential is malformed (bad salt or hash)")
        return False

    return hmac.compare_digest(_derive(password, salt), expected)


def generate_token() -> str:
    """Return 256 bits of cryptographically secure randomness as hex."""
    return secrets.token_hex(TOKEN_BYTES)


def validate_email(email: Optional[str]) -> ValidationResult:
    if not email or not _EMAIL_RE.fullmatch(email):
        return ValidationResult(False, "Invalid email address")
    return ValidationResult(True)


def validate_password(password: Optional[str]) -> ValidationResult:
    if not password or len(password) < PASSWORD_MIN_LEN:
        return ValidationResult(
            False, f"Password must be at least {PASSWORD_MIN_LEN} characters"
        )
    return ValidationResult(True)


def validate_username(username: Optional[str]) -> ValidationResult:
    if not username or not _USERNAME_RE.fullmatch(username):
        return ValidationResult(
            False,
            "Username must be 3-20 characters of letters, digits or underscores",
        )
    return ValidationResult(True)
