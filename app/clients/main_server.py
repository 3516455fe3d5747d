from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

ADMIN_MESSAGE = "admin_message"
CHAT_CLOSE = "chat_close"
CHAT_ASSIGN = "chat_assign"
ADMIN_TYPING = "admin_typing"


class MainServerClient:
    """Forwards operator activity to the main server that owns chat state."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        updates_path: str = "/telegram-updates",
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.updates_path = updates_path
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json", "x-api-key": api_key},
            transport=transport,
        )
        if not self.configured:
            logger.error("MAIN_SERVER_API_URL or MAIN_SERVER_API_KEY is not set, forwarding to the main server is disabled")

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    async def forward_update(self, event: str, data: Dict[str, Any]) -> bool:
        if not self.configured:
            logger.error("Main server not configured, dropping %s event", event)
            return False
        try:
            response = await self.client.post(f"{self.api_url}{self.updates_path}", json={"event": event, "data": data})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Failed to forward %s to main server: %s %s", event, exc.response.status_code, exc.response.text)
            return False
        except httpx.HTTPError as exc:
            logger.error("Failed to forward %s to main server: %s", event, exc)
            return False
        logger.info("Forwarded %s for chat %s to main server", event, data.get("chatId"))
        return True

    async def aclose(self) -> None:
        await self.client.aclose()
