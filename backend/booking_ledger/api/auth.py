import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_ledger.api.schemas import (
    AuthStatus,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SignupRequest,
    SignupResponse,
    ValidationErrorResponse,
)
from booking_ledger.core.exceptions import DomainException, ServiceException
from booking_ledger.core.identity import IdentityStore
from booking_ledger.core.sessions import (
    Identity,
    SessionAuthority,
    get_optional_identity,
    get_session_authority,
    session_token_from,
)
from booking_ledger.core.settings import Settings
from booking_ledger.db.session import get_db_session

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])


@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info("operation_completed", operation=operation, duration_seconds=round(duration, 3))


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.post("/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "User registered successfully"},
        400: {"model": ValidationErrorResponse, "description": "Missing fields or weak password"},
        409: {"model": ErrorResponse, "description": "Account already exists"},
        500: {"model": ErrorResponse, "description": "Registration failed"}
    },
    summary="User registration",
    description="Register a new user account"
)
async def signup(
    request: Request,
    payload: SignupRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Register a new user"""
    async with performance_timer("user_registration"):
        try:
            store = IdentityStore(session, request.app.state.password_hasher)
            user_id = await store.register(payload.username, payload.email, payload.password)
            return SignupResponse(message="User registered successfully", user_id=user_id)

        except DomainException as de:
            logger.warning(
                "user_registration_rejected",
                status_code=de.status_code,
                detail=de.message,
                username=payload.username
            )
            raise
        except Exception as e:
            logger.error(
                "user_registration_unexpected_error",
                error=str(e),
                error_type=type(e).__name__,
                username=payload.username
            )
            raise ServiceException("Registration failed")


@router.post("/login",
    response_model=LoginResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Successfully authenticated; session cookie set"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        500: {"model": ErrorResponse, "description": "Error during login"}
    },
    summary="User login",
    description="Authenticate user and start a server-held session"
)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    redirect: Optional[str] = Query(None, description="Path to send the user to after login"),
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Authenticate user and set the session cookie"""
    async with performance_timer("user_login"):
        try:
            grant = await authority.authenticate(credentials.username, credentials.password)

            # A fresh login replaces whatever session the browser held
            previous = session_token_from(request)
            if previous:
                await authority.revoke(previous)

            _set_session_cookie(response, request.app.state.settings, grant.token)

            logger.info(
                "user_login_success",
                username=grant.identity.username,
                ip_address=request.client.host if request.client else None
            )

            return LoginResponse(
                message="Login successful",
                username=grant.identity.username,
                redirect=f"/{redirect.lstrip('/')}" if redirect else None,
            )

        except DomainException:
            raise
        except Exception as e:
            logger.error(
                "user_login_error",
                error=str(e),
                error_type=type(e).__name__
            )
            raise ServiceException("Error during login")


@router.post("/logout",
    response_model=MessageResponse,
    responses={
        200: {"description": "Successfully logged out"},
        500: {"model": ErrorResponse, "description": "Error logging out"}
    },
    summary="User logout",
    description="Destroy the server-held session and clear the cookie"
)
async def logout(
    request: Request,
    response: Response,
    authority: SessionAuthority = Depends(get_session_authority),
):
    """Logout user; succeeds even when no session is attached"""
    async with performance_timer("user_logout"):
        try:
            removed = await authority.revoke(session_token_from(request))
            response.delete_cookie(request.app.state.settings.SESSION_COOKIE_NAME)
            logger.info("user_logout", session_found=removed)
            return MessageResponse(message="Logged out successfully")

        except Exception as e:
            logger.error("user_logout_error", error=str(e), error_type=type(e).__name__)
            raise ServiceException("Error logging out")


@router.get("/api/auth/status",
    response_model=AuthStatus,
    response_model_exclude_none=True,
    summary="Session status",
    description="Report whether the caller holds a live session"
)
async def auth_status(
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    if identity is None:
        return AuthStatus(logged_in=False)
    return AuthStatus(logged_in=True, username=identity.username, email=identity.email)
