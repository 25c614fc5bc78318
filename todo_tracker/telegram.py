from dataclasses import dataclass
from typing import Optional, Union

import httpx
import structlog

log = structlog.get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    error: Optional[str] = None


class TelegramClient:
    """Sends bot messages through the Telegram Bot API.

    Delivery is best effort: failures come back as a ``DeliveryResult`` rather
    than an exception so callers can log them and move on.
    """

    def __init__(self, bot_token: str, base_url: str = TELEGRAM_API_URL, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.bot_token = bot_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send_message(
        self,
        chat_id: Union[int, str],
        text: str,
        parse_mode: Optional[str] = None,
    ) -> DeliveryResult:
        if not self.bot_token:
            return DeliveryResult(ok=False, error="TELEGRAM_BOT_TOKEN is not set")

        payload = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        url = f"{self.base_url}/bot{self.bot_token}/sendMessage"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            log.warning("telegram_send_failed", chat_id=chat_id, error=str(e))
            return DeliveryResult(ok=False, error=str(e))

        if response.status_code != 200:
            log.warning("telegram_send_rejected", chat_id=chat_id, status=response.status_code)
            return DeliveryResult(ok=False, error=f"HTTP {response.status_code}")

        return DeliveryResult(ok=True)
