"""Email/password accounts with rotating access and refresh tokens."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from werkzeug.security import generate_password_hash, check_password_hash

from enclave.clock import utcnow
from enclave.config import AuthConfig
from enclave.database import UserRecord, AuthSessionRecord
from enclave.errors import Unauthorized, ValidationFailed

from .base import commit

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "enclave_access_token"
REFRESH_COOKIE = "enclave_refresh_token"
MIN_PASSWORD_LENGTH = 6


@dataclass
class AuthTokens:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass
class ResolvedUser:
    """A user found from request tokens; ``tokens`` is set when they rotated."""

    user: UserRecord
    tokens: Optional[AuthTokens] = None


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _issue_tokens(session, user_id: int, config: AuthConfig) -> AuthTokens:
    now = utcnow()
    record = AuthSessionRecord(
        user_id=user_id,
        access_token=secrets.token_urlsafe(32),
        refresh_token=secrets.token_urlsafe(32),
        access_expires_at=now + timedelta(seconds=config.access_token_ttl),
        refresh_expires_at=now + timedelta(seconds=config.refresh_token_ttl),
    )
    session.add(record)
    commit(session, "session")
    return AuthTokens(
        access_token=record.access_token,
        refresh_token=record.refresh_token,
        access_expires_at=record.access_expires_at,
        refresh_expires_at=record.refresh_expires_at,
    )


def sign_up(session, email: str, password: str, confirmed: bool = True) -> UserRecord:
    """Create an account.

    Raises:
        ValidationFailed: Missing email, short password, or email already taken
    """
    email = _normalize_email(email)
    if not email or "@" not in email:
        raise ValidationFailed("A valid email address is required")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if session.query(UserRecord).filter_by(email=email).first():
        raise ValidationFailed("An account with that email already exists")

    user = UserRecord(
        email=email,
        password_hash=generate_password_hash(password),
        confirmed_at=utcnow() if confirmed else None,
    )
    session.add(user)
    commit(session, "account")
    logger.info("Created account %s", user.id)
    return user


def sign_in(session, email: str, password: str, config: AuthConfig) -> AuthTokens:
    """Check credentials and issue a fresh token pair."""
    user = session.query(UserRecord).filter_by(email=_normalize_email(email)).first()
    if user is None or not check_password_hash(user.password_hash, password or ""):
        raise Unauthorized("Invalid email or password")
    return _issue_tokens(session, user.id, config)


def resolve_user(
    session,
    access_token: Optional[str],
    refresh_token: Optional[str],
    config: AuthConfig,
) -> Optional[ResolvedUser]:
    """Find the user behind a token pair.

    A live access token is enough. An expired access token is only accepted
    together with its own unexpired refresh token, in which case the pair is
    rotated and the new tokens are returned alongside the user.
    """
    now = utcnow()
    record = None
    if access_token:
        record = session.query(AuthSessionRecord).filter_by(access_token=access_token).first()
        if record is not None and record.access_expires_at > now:
            user = session.get(UserRecord, record.user_id)
            return ResolvedUser(user) if user else None

    if not refresh_token:
        return None
    if record is None:
        record = session.query(AuthSessionRecord).filter_by(refresh_token=refresh_token).first()
    if record is None or record.refresh_token != refresh_token:
        return None
    if record.refresh_expires_at <= now:
        return None

    user = session.get(UserRecord, record.user_id)
    if user is None:
        return None
    session.delete(record)
    tokens = _issue_tokens(session, user.id, config)
    logger.debug("Rotated tokens for user %s", user.id)
    return ResolvedUser(user, tokens)


def sign_out(session, access_token: Optional[str]) -> None:
    if not access_token:
        return
    record = session.query(AuthSessionRecord).filter_by(access_token=access_token).first()
    if record is not None:
        session.delete(record)
        commit(session, "session")


def change_credentials(session, user: UserRecord, email: Optional[str] = None,
                       password: Optional[str] = None) -> UserRecord:
    """Update a user's email and/or password."""
    if email:
        email = _normalize_email(email)
        if email != user.email:
            taken = session.query(UserRecord).filter_by(email=email).first()
            if taken:
                raise ValidationFailed("An account with that email already exists")
            user.email = email
    if password:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        user.password_hash = generate_password_hash(password)
    commit(session, "account")
    return user


def tokens_from_request(request) -> tuple:
    """Read (access, refresh) tokens from headers, falling back to cookies."""
    access = None
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        access = header[7:].strip() or None
    refresh = request.headers.get("Refresh-Token") or None
    if access is None:
        access = request.cookies.get(ACCESS_COOKIE)
    if refresh is None:
        refresh = request.cookies.get(REFRESH_COOKIE)
    return access, refresh
