"""
Identity store: user registration and credential checks
"""

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_ledger.core.exceptions import ConflictException, ValidationException
from booking_ledger.core.security import PasswordHasher, validate_password_strength
from booking_ledger.db import crud
from booking_ledger.db.models import User

logger = structlog.get_logger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class IdentityStore:
    """Owns User records"""

    def __init__(self, session: AsyncSession, hasher: Optional[PasswordHasher] = None):
        self.session = session
        self.hasher = hasher or PasswordHasher()

    async def register(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
    ) -> UUID:
        """Register a new user and return its id.

        Conflicts are decided by the unique constraints on users.email and
        users.username at insert time; no lookup precedes the insert.
        """
        missing = [
            name for name, value in
            (("username", username), ("email", email), ("password", password))
            if _is_blank(value)
        ]
        if missing:
            raise ValidationException(
                "All fields are required",
                details={"missing_fields": missing},
            )

        validation = validate_password_strength(password)
        if not validation["is_valid"]:
            raise ValidationException(
                "Password must be at least 6 characters long, with one uppercase letter, "
                "one lowercase letter, one number, and one special character.",
                details={"errors": validation["errors"]},
            )

        try:
            user = await crud.create_user(
                self.session,
                username=username,
                email=email,
                password_hash=self.hasher.hash(password),
            )
        except IntegrityError:
            logger.info("user_registration_conflict", username=username)
            raise ConflictException("Account already exists! Login to continue...")

        logger.info("user_registered", username=user.username, user_id=str(user.id))
        return user.id

    async def verify_credentials(self, username: str, password: str) -> Optional[User]:
        """Exact, case-sensitive username match plus password check"""
        user = await crud.get_user_by_username(self.session, username)
        if user is None:
            return None
        if not self.hasher.verify(password, user.password_hash):
            return None
        return user
