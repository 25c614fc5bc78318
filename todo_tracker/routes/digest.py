import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from ..db import get_db
from ..digest import build_daily_digest, build_weekly_report
from ..errors import UpstreamError
from ..schemas import DigestResponse

router = APIRouter(prefix="/digest", tags=["digest"])

log = structlog.get_logger(__name__)


def _digest_owner(request: Request) -> str:
    owner = request.app.state.settings.telegram_chat_id
    if not owner:
        raise HTTPException(status_code=500, detail="TELEGRAM_CHAT_ID is not configured")
    return owner


async def _send(request: Request, owner: str, text: str, kind: str) -> bool:
    result = await request.app.state.telegram.send_message(owner, text)
    if result.ok:
        log.info("digest_sent", kind=kind, owner=owner)
    else:
        log.warning("digest_not_delivered", kind=kind, owner=owner, error=result.error)
    return result.ok


@router.api_route("/daily", methods=["GET", "POST"], response_model=DigestResponse)
async def daily_digest(request: Request, db: AsyncSession = Depends(get_db)):
    """Send the morning overview. Meant to be hit by a cron job."""
    owner = _digest_owner(request)
    try:
        text = await build_daily_digest(db, owner)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    delivered = await _send(request, owner, text, "daily")
    return DigestResponse(message="Digest sent", delivered=delivered)


@router.api_route("/weekly", methods=["GET", "POST"], response_model=DigestResponse)
async def weekly_report(request: Request, db: AsyncSession = Depends(get_db)):
    """Send the weekly review"""
    owner = _digest_owner(request)
    try:
        text = await build_weekly_report(db, owner)
    except UpstreamError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    delivered = await _send(request, owner, text, "weekly")
    return DigestResponse(message="Weekly report sent", delivered=delivered)
