import hashlib
import hmac
import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .db import get_db
from .errors import AuthError, InvalidToken, UpstreamError
from .schemas import Identity

log = structlog.get_logger(__name__)


def generate_token() -> str:
    """A fresh opaque API secret. Only its hash is ever stored."""
    return f"{uuid.uuid4()}-{uuid.uuid4()}"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def authenticate(db: AsyncSession, bearer: str, now: Optional[datetime] = None) -> Identity:
    """Resolve an API token to the identity that owns it"""
    if not bearer:
        raise InvalidToken("Missing token")

    record = await crud.get_api_token_by_hash(db, hash_token(bearer))
    if record is None:
        raise InvalidToken()

    now = now or datetime.now(timezone.utc)
    if now >= _as_utc(record.expires_at):
        raise InvalidToken("Token expired")

    return Identity(user_id=record.user_id, token_name=record.name)


def bearer_from_header(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing or invalid Authorization header")
    return authorization[len("Bearer "):].strip()


async def get_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Dependency resolving the caller of the task API.

    Accepts an API token, or the shared service key together with an
    ``X-User-Id`` header for legacy clients.
    """
    try:
        bearer = bearer_from_header(authorization)

        service_key = request.app.state.settings.service_role_key
        if service_key and hmac.compare_digest(bearer.encode("utf-8"), service_key.encode("utf-8")):
            return Identity(user_id=x_user_id or "cli", token_name=None)

        return await authenticate(db, bearer)
    except AuthError as e:
        log.info("auth_rejected", reason=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
