"""Rendering of conversation messages for the control group."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from app import action_tokens
from app.correlation import embed
from app.models import CONTENT_FILE, CONTENT_IMAGE, CONTENT_TEXT, SENDER_USER, Chat, ChatMessage
from app.time_utils import DEFAULT_TZ_NAME, format_local

TEXT_LIMIT = 4096
CAPTION_LIMIT = 1024
QUICK_REPLY_LABEL_LIMIT = 32

FILE_PLACEHOLDER = "(file)"

_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class Action:
    label: str
    token: str

    def as_button(self) -> Dict[str, str]:
        return {"text": self.label, "callback_data": self.token}


@dataclass
class OutboundMessage:
    kind: str
    text: str
    media_url: Optional[str] = None
    file_name: Optional[str] = None
    actions: List[Action] = field(default_factory=list)


class ActionPolicy:
    """Decides which conversation buttons are offered.

    The main server owns conversation state; deployments that track more than
    the assignment pass their own policy to the dispatcher.
    """

    def can_claim(self, chat: Chat) -> bool:
        raise NotImplementedError


class DefaultActionPolicy(ActionPolicy):
    def can_claim(self, chat: Chat) -> bool:
        return not chat.assigned_admin_telegram_id


def _visible_length(rendered: str) -> int:
    return len(html.unescape(_TAG_RE.sub("", rendered)))


def _truncate(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"


def _inline(value: str) -> str:
    # User values must never start a line of their own: only embed() may.
    return html.escape(" ".join(value.splitlines()))


def render_message_text(chat: Chat, message: ChatMessage, tz_name: str = DEFAULT_TZ_NAME, limit: int = TEXT_LIMIT) -> str:
    user = chat.user
    user_info = _inline(user.name or "Unknown user")
    if user.phone_number:
        user_info += f" ({_inline(user.phone_number)})"

    lines = [
        f"💬 <b>New message from {user_info}</b>",
        f"<code>{embed(chat.chat_id)}</code>",
        f"⏰ {format_local(message.timestamp, tz_name)}",
    ]
    if user.current_page:
        lines.append(f"📍 Page: {_inline(user.current_page)}")
    if chat.tags:
        lines.append(f"🏷️ Tags: {_inline(', '.join(chat.tags))}")
    header = "\n".join(lines) + "\n\n📝 <b>Message:</b>\n"

    body = message.content.text or FILE_PLACEHOLDER
    body = _truncate(body, limit - _visible_length(header))
    return header + html.escape(body)


def conversation_actions(chat: Chat, message: ChatMessage, policy: ActionPolicy) -> List[Action]:
    ref = chat.chat_id
    actions: List[Action] = []
    if message.sender == SENDER_USER:
        actions.append(Action("✅ Quick replies", action_tokens.encode(action_tokens.SHOW_QUICK_REPLIES, ref)))
    if policy.can_claim(chat):
        actions.append(Action("👤 Assign to me", action_tokens.encode(action_tokens.ASSIGN, ref)))
    actions.append(Action("✍️ Replying", action_tokens.encode(action_tokens.REPLYING, ref)))
    actions.append(Action("🔴 Close chat", action_tokens.encode(action_tokens.CLOSE, ref)))
    return actions


def quick_reply_actions(ref: str, replies: Sequence[str]) -> List[Action]:
    actions = []
    for index, reply in enumerate(replies):
        label = reply if len(reply) <= QUICK_REPLY_LABEL_LIMIT else reply[:QUICK_REPLY_LABEL_LIMIT] + "..."
        actions.append(Action(label, action_tokens.encode(action_tokens.QUICK_MESSAGE, ref, str(index))))
    return actions


def build_inline_keyboard(actions: Sequence[Action], per_row: int = 2) -> Dict[str, Any]:
    rows = [
        [action.as_button() for action in actions[start : start + per_row]]
        for start in range(0, len(actions), per_row)
    ]
    return {"inline_keyboard": rows}


def render_quick_reply_prompt(ref: str) -> str:
    return f"Choose a quick reply:\n<code>{embed(ref)}</code>"


def render_quick_reply_sent(ref: str, reply: str, admin_name: str) -> str:
    return (
        f"✅ Quick reply sent by {_inline(admin_name)}:\n"
        f"<code>{embed(ref)}</code>\n\n{html.escape(reply)}"
    )


def render_chat_closed(ref: str, admin_name: str, when: datetime, tz_name: str = DEFAULT_TZ_NAME) -> str:
    return (
        "🔴 <b>Chat closed</b>\n"
        f"<code>{embed(ref)}</code>\n"
        f"👮 Admin: {_inline(admin_name)}\n"
        f"⏰ {format_local(when, tz_name)}"
    )


def render_chat_assigned(ref: str, admin_name: str, when: datetime, tz_name: str = DEFAULT_TZ_NAME) -> str:
    return (
        f"👤 <b>Chat assigned to {_inline(admin_name)}</b>\n"
        f"<code>{embed(ref)}</code>\n"
        f"⏰ {format_local(when, tz_name)}"
    )


def build_outbound(
    chat: Chat,
    message: ChatMessage,
    policy: Optional[ActionPolicy] = None,
    tz_name: str = DEFAULT_TZ_NAME,
) -> OutboundMessage:
    policy = policy or DefaultActionPolicy()
    content = message.content
    actions = conversation_actions(chat, message, policy)

    kind = content.type
    if kind in (CONTENT_IMAGE, CONTENT_FILE) and not content.file_url:
        kind = CONTENT_TEXT
    if kind not in (CONTENT_IMAGE, CONTENT_FILE):
        kind = CONTENT_TEXT

    limit = TEXT_LIMIT if kind == CONTENT_TEXT else CAPTION_LIMIT
    return OutboundMessage(
        kind=kind,
        text=render_message_text(chat, message, tz_name, limit),
        media_url=content.file_url if kind != CONTENT_TEXT else None,
        file_name=content.file_name,
        actions=actions,
    )
