"""Typed view over raw Telegram webhook updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from app.models import AdminIdentity
from app.time_utils import from_unix, now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sender:
    user_id: str
    display_name: str

    def as_admin(self) -> AdminIdentity:
        return AdminIdentity(name=self.display_name, telegram_id=self.user_id)


@dataclass(frozen=True)
class Document:
    file_id: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None


@dataclass(frozen=True)
class PlainMessage:
    chat_id: str
    message_id: int
    sender: Sender
    timestamp: datetime
    text: Optional[str] = None
    caption: Optional[str] = None
    photo_file_id: Optional[str] = None
    document: Optional[Document] = None


@dataclass(frozen=True)
class ReplyMessage(PlainMessage):
    quoted_text: str = ""


@dataclass(frozen=True)
class CallbackAction:
    callback_id: str
    chat_id: Optional[str]
    message_id: Optional[int]
    sender: Sender
    timestamp: datetime
    data: str = ""
    keyboard: List[List[Dict[str, Any]]] = field(default_factory=list)


InboundUpdate = Union[PlainMessage, ReplyMessage, CallbackAction]


def _sender(raw: Optional[Dict[str, Any]]) -> Sender:
    raw = raw or {}
    first = raw.get("first_name") or ""
    last = raw.get("last_name") or ""
    name = f"{first} {last}".strip() or raw.get("username") or ""
    return Sender(user_id=str(raw.get("id", "")), display_name=name)


def _chat_id(message: Dict[str, Any]) -> Optional[str]:
    chat = message.get("chat") or {}
    if "id" not in chat:
        return None
    return str(chat["id"])


def _message_fields(message: Dict[str, Any]) -> Dict[str, Any]:
    photos = message.get("photo") or []
    raw_document = message.get("document")
    document = None
    if raw_document and raw_document.get("file_id"):
        document = Document(
            file_id=raw_document["file_id"],
            file_name=raw_document.get("file_name"),
            file_size=raw_document.get("file_size"),
        )
    return {
        "chat_id": _chat_id(message),
        "message_id": message.get("message_id"),
        "sender": _sender(message.get("from")),
        "timestamp": from_unix(message.get("date")),
        "text": message.get("text"),
        "caption": message.get("caption"),
        # Telegram lists photo sizes smallest first.
        "photo_file_id": photos[-1].get("file_id") if photos else None,
        "document": document,
    }


def _quoted_text(quoted: Dict[str, Any]) -> str:
    # Only the relay bot writes correlation lines; quotes of people are ignored.
    if not (quoted.get("from") or {}).get("is_bot"):
        return ""
    return quoted.get("text") or quoted.get("caption") or ""


def parse_update(raw: Dict[str, Any]) -> Optional[InboundUpdate]:
    """Classify a raw update; anything that is not a message or a callback is None."""

    message = raw.get("message")
    if message:
        fields = _message_fields(message)
        if fields["chat_id"] is None:
            return None
        quoted = message.get("reply_to_message")
        if quoted:
            return ReplyMessage(quoted_text=_quoted_text(quoted), **fields)
        return PlainMessage(**fields)

    callback = raw.get("callback_query")
    if callback:
        origin = callback.get("message") or {}
        markup = origin.get("reply_markup") or {}
        return CallbackAction(
            callback_id=str(callback.get("id", "")),
            chat_id=_chat_id(origin),
            message_id=origin.get("message_id"),
            sender=_sender(callback.get("from")),
            timestamp=now_utc(),
            data=callback.get("data") or "",
            keyboard=markup.get("inline_keyboard") or [],
        )

    logger.debug("Unsupported update %s", raw.get("update_id"))
    return None
