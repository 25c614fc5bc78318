import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from ..bot import route_update
from ..db import get_db
from ..schemas import TelegramUpdate

router = APIRouter(prefix="/telegram", tags=["telegram"])

log = structlog.get_logger(__name__)


@router.post("/webhook", response_class=PlainTextResponse)
async def webhook(
    update: TelegramUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Handle one Telegram update and reply in the originating chat.

    Always answers 200 so Telegram doesn't redeliver the update.
    """
    message = update.message
    if message is None or not message.text:
        return "OK"

    chat_id = message.chat.id
    reply = await route_update(db, request.app.state.settings, chat_id, message.text)

    result = await request.app.state.telegram.send_message(chat_id, reply.text, parse_mode=reply.parse_mode)
    if not result.ok:
        log.warning("reply_not_delivered", chat_id=chat_id, error=result.error)
    return "OK"
