from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

API_ROOT = "https://api.telegram.org"


class TelegramClient:
    """Thin Bot API wrapper. Failures are logged and reported as None."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 30,
        setup_timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.bot_token = bot_token
        self.base_url = f"{API_ROOT}/bot{bot_token}"
        self.file_base_url = f"{API_ROOT}/file/bot{bot_token}"
        self.setup_timeout = setup_timeout
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Optional[Any]:
        if not self.bot_token:
            logger.warning("Telegram token missing, skipping %s", method)
            return None
        kwargs: Dict[str, Any] = {"json": params or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self.client.post(f"{self.base_url}/{method}", **kwargs)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Telegram API call failed for %s: %s", method, exc)
            return None
        if not isinstance(body, dict) or not body.get("ok"):
            logger.error("Telegram API call failed for %s: %s", method, body)
            return None
        return body.get("result")

    async def send_message(self, chat_id: str, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self.call("sendMessage", payload)

    async def send_photo(
        self, chat_id: str, photo: str, caption: str = "", reply_markup: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        payload: Dict[str, Any] = {"chat_id": chat_id, "photo": photo}
        if caption:
            payload["caption"] = caption
            payload["parse_mode"] = "HTML"
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self.call("sendPhoto", payload)

    async def send_document(
        self, chat_id: str, document: str, caption: str = "", reply_markup: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        payload: Dict[str, Any] = {"chat_id": chat_id, "document": document}
        if caption:
            payload["caption"] = caption
            payload["parse_mode"] = "HTML"
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self.call("sendDocument", payload)

    async def get_file_url(self, file_id: str) -> Optional[str]:
        result = await self.call("getFile", {"file_id": file_id})
        if not result or not result.get("file_path"):
            return None
        return f"{self.file_base_url}/{result['file_path']}"

    async def get_me(self) -> Optional[Dict[str, Any]]:
        return await self.call("getMe", timeout=self.setup_timeout)

    async def set_webhook(self, url: str, allowed_updates: List[str], secret_token: str = "") -> bool:
        payload: Dict[str, Any] = {
            "url": url,
            "allowed_updates": allowed_updates,
            "drop_pending_updates": True,
        }
        if secret_token:
            payload["secret_token"] = secret_token
        return await self.call("setWebhook", payload, timeout=self.setup_timeout) is not None

    async def delete_webhook(self) -> bool:
        result = await self.call("deleteWebhook", {"drop_pending_updates": True}, timeout=self.setup_timeout)
        return result is not None

    async def aclose(self) -> None:
        await self.client.aclose()
