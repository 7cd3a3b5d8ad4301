"""
Password hashing and credential validation helpers.
"""

import hashlib
import base64
import logging
from typing import List

import bcrypt
from email_validator import EmailNotValidError, validate_email

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def _prepare_password(password: str) -> bytes:
    """
    Pre-hash with SHA-256 so passwords longer than bcrypt's 72-byte limit
    are not silently truncated.
    """
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


def hash_password(password: str) -> str:
    """Salted bcrypt hash of the password."""
    return bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_prepare_password(password), password_hash.encode())
    except ValueError as e:
        logger.warning(f"Stored password hash is malformed: {e}")
        return False


def is_valid_email(email: str) -> bool:
    """Syntax check only; no DNS lookups."""
    if not email:
        return False
    try:
        validate_email(email.strip(), check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def registration_errors(username: str, email: str, password: str) -> List[str]:
    """
    Validate registration fields.

    Returns every failure message so the caller can report them together.
    """
    errors = []
    if not username or len(username.strip()) < MIN_USERNAME_LENGTH:
        errors.append(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
    if not is_valid_email(email):
        errors.append("Please enter a valid email address")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return errors
