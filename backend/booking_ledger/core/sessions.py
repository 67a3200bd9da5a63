"""
Session authority: issues, resolves and revokes server-held login sessions.

The client only ever holds an opaque token; the server keeps a row keyed by
the token's digest with the bound identity and a fixed expiry.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from booking_ledger.core.exceptions import InvalidCredentialsException, UnauthorizedException
from booking_ledger.core.identity import IdentityStore
from booking_ledger.core.security import PasswordHasher, digest_session_token, generate_session_token
from booking_ledger.core.settings import Settings
from booking_ledger.db import crud
from booking_ledger.db.session import get_db_session
from booking_ledger.db.models import AuthSession, User

logger = structlog.get_logger(__name__)


class Identity(BaseModel):
    username: str
    email: str


class SessionGrant(BaseModel):
    token: str
    identity: Identity
    expires_at: datetime


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionAuthority:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.settings = settings
        self.identities = IdentityStore(session, hasher)
        self.ttl = timedelta(hours=settings.SESSION_TTL_HOURS)

    async def authenticate(self, username: str, password: str) -> SessionGrant:
        user = await self.identities.verify_credentials(username, password)
        if user is None:
            logger.warning("login_failed", username=username)
            raise InvalidCredentialsException("Invalid username or password")
        return await self.issue(user)

    async def issue(self, user: User) -> SessionGrant:
        """Create a session for a user, valid for the configured TTL"""
        token = generate_session_token()
        issued_at = datetime.now(timezone.utc)
        record = AuthSession(
            token_digest=digest_session_token(token),
            username=user.username,
            email=user.email,
            issued_at=issued_at,
            expires_at=issued_at + self.ttl,
        )
        await crud.create_auth_session(self.session, record)

        logger.info("session_issued", username=user.username)
        return SessionGrant(
            token=token,
            identity=Identity(username=user.username, email=user.email),
            expires_at=record.expires_at,
        )

    async def resolve(self, token: Optional[str]) -> Identity:
        """Return the identity bound to a token, or raise UnauthorizedException"""
        if not token:
            raise UnauthorizedException("User not logged in")

        digest = digest_session_token(token)
        record = await crud.get_auth_session(self.session, digest)
        if record is None:
            raise UnauthorizedException("User not logged in")

        identity = Identity(username=record.username, email=record.email)
        if _as_utc(record.expires_at) <= datetime.now(timezone.utc):
            await crud.delete_auth_session(self.session, digest)
            logger.info("session_expired", username=identity.username)
            raise UnauthorizedException("Session expired")

        return identity

    async def revoke(self, token: Optional[str]) -> bool:
        """Destroy a session. Revoking an unknown token still succeeds.

        Returns whether a session row was actually removed.
        """
        if not token:
            return False
        removed = await crud.delete_auth_session(self.session, digest_session_token(token))
        if removed:
            logger.info("session_revoked")
        return removed > 0

    async def purge_expired(self) -> int:
        removed = await crud.delete_expired_auth_sessions(self.session, datetime.now(timezone.utc))
        if removed:
            logger.info("expired_sessions_purged", count=removed)
        return removed


# ===== FASTAPI DEPENDENCIES =====

def session_token_from(request: Request) -> Optional[str]:
    settings: Settings = request.app.state.settings
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_session_authority(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
) -> SessionAuthority:
    return SessionAuthority(session, request.app.state.settings, request.app.state.password_hasher)


async def get_current_identity(
    request: Request,
    authority: SessionAuthority = Depends(get_session_authority),
) -> Identity:
    """Identity of the logged-in caller; 401 when there is none"""
    return await authority.resolve(session_token_from(request))


async def get_optional_identity(
    request: Request,
    authority: SessionAuthority = Depends(get_session_authority),
) -> Optional[Identity]:
    try:
        return await authority.resolve(session_token_from(request))
    except UnauthorizedException:
        return None
