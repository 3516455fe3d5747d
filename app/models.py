from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.time_utils import isoformat_utc, parse_timestamp

CONTENT_TEXT = "text"
CONTENT_IMAGE = "image"
CONTENT_FILE = "file"

SENDER_USER = "user"
SENDER_SYSTEM = "system"
SENDER_ADMIN = "admin"


@dataclass(frozen=True)
class AdminIdentity:
    name: str
    telegram_id: str

    def as_payload(self) -> Dict[str, str]:
        return {"name": self.name, "telegramId": self.telegram_id}


@dataclass
class ChatUser:
    name: str = ""
    phone_number: Optional[str] = None
    current_page: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "ChatUser":
        payload = payload or {}
        return cls(
            name=payload.get("name") or "",
            phone_number=payload.get("phoneNumber") or None,
            current_page=payload.get("currentPage") or None,
        )


@dataclass
class Chat:
    """Conversation record owned by the main server."""

    chat_id: str
    user: ChatUser = field(default_factory=ChatUser)
    tags: List[str] = field(default_factory=list)
    assigned_admin_telegram_id: Optional[str] = None
    assigned_admin_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Chat":
        assigned = payload.get("assignedAdminTelegramId")
        return cls(
            chat_id=payload["chatId"],
            user=ChatUser.from_payload(payload.get("user")),
            tags=list(payload.get("tags") or []),
            assigned_admin_telegram_id=str(assigned) if assigned else None,
            assigned_admin_name=payload.get("assignedAdminName") or None,
        )


@dataclass
class MessageContent:
    type: str = CONTENT_TEXT
    text: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "MessageContent":
        return cls(
            type=payload.get("type", CONTENT_TEXT),
            text=payload.get("text"),
            file_url=payload.get("fileUrl") or None,
            file_name=payload.get("fileName") or None,
            file_size=payload.get("fileSize"),
        )

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "text": self.text or ""}
        if self.type != CONTENT_TEXT:
            payload["fileUrl"] = self.file_url
            payload["fileName"] = self.file_name
        if self.file_size is not None:
            payload["fileSize"] = self.file_size
        return payload


@dataclass
class ChatMessage:
    content: MessageContent
    timestamp: datetime
    sender: str = SENDER_USER

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChatMessage":
        return cls(
            content=MessageContent.from_payload(payload.get("content") or {}),
            timestamp=parse_timestamp(payload.get("timestamp")),
            sender=payload.get("sender") or SENDER_USER,
        )


def admin_message_event(
    chat_id: str,
    admin: AdminIdentity,
    content: MessageContent,
    timestamp: datetime,
    telegram_message_id: Optional[int],
) -> Dict[str, Any]:
    """Data of an ``admin_message`` event for the main server."""

    return {
        "chatId": chat_id,
        "message": {
            "sender": SENDER_ADMIN,
            "senderInfo": admin.as_payload(),
            "content": content.as_payload(),
            "timestamp": isoformat_utc(timestamp),
            "telegramMessageId": telegram_message_id,
        },
    }


def chat_action_event(chat_id: str, admin: AdminIdentity, timestamp: datetime) -> Dict[str, Any]:
    return {
        "chatId": chat_id,
        "admin": admin.as_payload(),
        "timestamp": isoformat_utc(timestamp),
    }
