import hashlib
import logging
import re
import secrets
from typing import Any, Dict, List, Optional, Sequence

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

# Password configuration
PASSWORD_MIN_LENGTH = 6
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"
_ALLOWED_PASSWORD = re.compile(r"[A-Za-z0-9@$!%*?&]+")

SESSION_TOKEN_BYTES = 32


class PasswordValidator:
    """Password policy checks"""

    @staticmethod
    def validate_password(password: str) -> Dict[str, Any]:
        """Validate a password and return every rule it breaks"""
        errors: List[str] = []

        if len(password) < PASSWORD_MIN_LENGTH:
            errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

        if not any(c.islower() for c in password):
            errors.append("Password must contain at least one lowercase letter")

        if not any(c.isupper() for c in password):
            errors.append("Password must contain at least one uppercase letter")

        if not any(c.isdigit() for c in password):
            errors.append("Password must contain at least one number")

        if not any(c in PASSWORD_SPECIAL_CHARACTERS for c in password):
            errors.append(
                f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARACTERS})"
            )

        if password and not _ALLOWED_PASSWORD.fullmatch(password):
            errors.append(
                f"Password may only contain letters, numbers and {PASSWORD_SPECIAL_CHARACTERS}"
            )

        return {
            "is_valid": len(errors) == 0,
            "errors": errors,
        }


def validate_password_strength(password: str) -> Dict[str, Any]:
    return PasswordValidator.validate_password(password)


class PasswordHasher:
    """One-way password secrets backed by a passlib CryptContext"""

    def __init__(self, schemes: Optional[Sequence[str]] = None):
        self.context = CryptContext(schemes=list(schemes or ["pbkdf2_sha256"]), deprecated="auto")

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    def verify(self, plain: str, hashed: str) -> bool:
        """Verify a password against its hash; unknown hash formats never match"""
        try:
            return self.context.verify(plain, hashed)
        except (ValueError, TypeError) as e:
            logger.warning(f"Password verification error: {e}")
            return False


def generate_session_token() -> str:
    """Opaque, unguessable token handed to the client"""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def digest_session_token(token: str) -> str:
    """Server-side key for a session token; the raw token is never stored"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
