"""
CRUD operations for users, bookings and server-held sessions
"""

import logging
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from booking_ledger.db.models import User, Booking, AuthSession

logger = logging.getLogger(__name__)

# ===== USER CRUD OPERATIONS =====

async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
) -> User:
    """Insert a user; uniqueness violations surface as IntegrityError"""
    try:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        logger.info(f"Created user: {username}")
        return user
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning(f"Error creating user {username}: {e}")
        raise

async def get_user_by_username(session: AsyncSession, username: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.username == username)
    )
    return result.scalar_one_or_none()

# ===== BOOKING CRUD OPERATIONS =====

async def insert_booking(session: AsyncSession, booking: Booking) -> Booking:
    """Insert a booking; constraint violations surface as IntegrityError"""
    try:
        session.add(booking)
        await session.commit()
        await session.refresh(booking)
        logger.info(f"Created booking: {booking.booking_reference}")
        return booking
    except SQLAlchemyError as e:
        await session.rollback()
        logger.warning(f"Error creating booking {booking.booking_reference}: {e}")
        raise

async def find_booking(session: AsyncSession, criteria: ColumnElement) -> Optional[Booking]:
    """Return the first booking matching an arbitrary filter clause"""
    result = await session.execute(
        select(Booking).where(criteria).limit(1)
    )
    return result.scalars().first()

async def get_booking_by_id(session: AsyncSession, booking_id: UUID) -> Optional[Booking]:
    result = await session.execute(
        select(Booking).where(Booking.id == booking_id)
    )
    return result.scalar_one_or_none()

async def get_bookings_for_owner(session: AsyncSession, user_email: str) -> List[Booking]:
    """Get every booking owned by an email, oldest first"""
    result = await session.execute(
        select(Booking)
        .where(Booking.user_email == user_email)
        .order_by(Booking.created_at, Booking.id)
    )
    return list(result.scalars().all())

async def save_booking(session: AsyncSession, booking: Booking) -> Booking:
    """Persist changes made to a loaded booking"""
    booking_id = booking.id
    try:
        session.add(booking)
        await session.commit()
        await session.refresh(booking)
        return booking
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error updating booking {booking_id}: {e}")
        raise

# ===== SESSION CRUD OPERATIONS =====

async def create_auth_session(session: AsyncSession, auth_session: AuthSession) -> AuthSession:
    try:
        session.add(auth_session)
        await session.commit()
        return auth_session
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating session for {auth_session.username}: {e}")
        raise

async def get_auth_session(session: AsyncSession, token_digest: str) -> Optional[AuthSession]:
    return await session.get(AuthSession, token_digest)

async def delete_auth_session(session: AsyncSession, token_digest: str) -> int:
    """Delete a session row; returns the number of rows removed"""
    try:
        result = await session.execute(
            delete(AuthSession).where(AuthSession.token_digest == token_digest)
        )
        await session.commit()
        return result.rowcount or 0
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error deleting session: {e}")
        raise

async def delete_expired_auth_sessions(session: AsyncSession, now: datetime) -> int:
    try:
        result = await session.execute(
            delete(AuthSession).where(AuthSession.expires_at <= now)
        )
        await session.commit()
        return result.rowcount or 0
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error purging expired sessions: {e}")
        raise
