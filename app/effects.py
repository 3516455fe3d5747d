from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from app.clients.main_server import MainServerClient
from app.clients.telegram import TelegramClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformCall:
    """One Telegram Bot API call with its flat parameter map."""

    method: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ForwardEvent:
    """An event for the main server; ``on_failure`` is posted if forwarding fails."""

    event: str
    data: Dict[str, Any]
    on_failure: Optional[PlatformCall] = None


Effect = Union[PlatformCall, ForwardEvent]


def answer_callback(callback_id: str, text: str = "") -> PlatformCall:
    params: Dict[str, Any] = {"callback_query_id": callback_id}
    if text:
        params["text"] = text
    return PlatformCall("answerCallbackQuery", params)


def send_text(chat_id: str, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> PlatformCall:
    params: Dict[str, Any] = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
    if reply_markup:
        params["reply_markup"] = reply_markup
    return PlatformCall("sendMessage", params)


def edit_reply_markup(chat_id: str, message_id: int, keyboard: List[List[Dict[str, Any]]]) -> PlatformCall:
    return PlatformCall(
        "editMessageReplyMarkup",
        {"chat_id": chat_id, "message_id": message_id, "reply_markup": {"inline_keyboard": keyboard}},
    )


def edit_text(chat_id: str, message_id: int, text: str) -> PlatformCall:
    return PlatformCall(
        "editMessageText",
        {"chat_id": chat_id, "message_id": message_id, "text": text, "parse_mode": "HTML"},
    )


class EffectRunner:
    def __init__(self, telegram: TelegramClient, main_server: MainServerClient):
        self.telegram = telegram
        self.main_server = main_server

    async def apply(self, effects: Sequence[Effect]) -> bool:
        """Run effects in order. Stops after the first failed forward."""

        for effect in effects:
            if isinstance(effect, ForwardEvent):
                delivered = await self.main_server.forward_update(effect.event, effect.data)
                if not delivered:
                    if effect.on_failure is not None:
                        await self.telegram.call(effect.on_failure.method, effect.on_failure.params)
                    return False
            else:
                await self.telegram.call(effect.method, effect.params)
        return True
