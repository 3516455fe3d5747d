from __future__ import annotations

import html
import logging
from typing import Any, Dict, List, Optional

from app import action_tokens
from app.action_tokens import ActionToken, ActionTokenError
from app.clients import main_server
from app.clients.main_server import MainServerClient
from app.clients.telegram import TelegramClient
from app.config import Config
from app.correlation import embed, extract
from app.effects import (
    Effect,
    EffectRunner,
    ForwardEvent,
    answer_callback,
    edit_reply_markup,
    edit_text,
    send_text,
)
from app.formatting import (
    build_inline_keyboard,
    quick_reply_actions,
    render_chat_assigned,
    render_chat_closed,
    render_quick_reply_prompt,
    render_quick_reply_sent,
)
from app.models import CONTENT_FILE, CONTENT_IMAGE, CONTENT_TEXT, MessageContent, admin_message_event, chat_action_event
from app.services.connection import ConnectionService
from app.updates import CallbackAction, PlainMessage, ReplyMessage, parse_update

logger = logging.getLogger(__name__)

# Callback actions forwarded one-to-one: (event, acknowledgement text).
CHAT_ACTIONS = {
    action_tokens.CLOSE: (main_server.CHAT_CLOSE, "Chat closed."),
    action_tokens.ASSIGN: (main_server.CHAT_ASSIGN, "Chat assigned to you."),
    action_tokens.REPLYING: (main_server.ADMIN_TYPING, "Marked as replying."),
}

STATUS_COMMANDS = ("start", "status")


class TelegramRouter:
    def __init__(
        self,
        config: Config,
        telegram: TelegramClient,
        main_server_client: MainServerClient,
        connection: ConnectionService,
    ):
        self.config = config
        self.telegram = telegram
        self.main_server = main_server_client
        self.connection = connection
        self.runner = EffectRunner(telegram, main_server_client)

    @property
    def group_id(self) -> str:
        return self.config.telegram_group_id

    async def handle_update(self, update: Dict[str, Any]) -> Dict[str, Any]:
        """Route and apply one webhook update. Never raises."""

        try:
            parsed = parse_update(update)
            if parsed is None:
                return {"ok": True}
            effects = await self.route(parsed)
            if effects:
                await self.runner.apply(effects)
        except Exception:
            logger.exception("Error handling update %s", update.get("update_id") if isinstance(update, dict) else None)
        return {"ok": True}

    async def route(self, update) -> List[Effect]:
        if not self.group_id or update.chat_id != self.group_id:
            logger.debug("Ignoring update from chat %s", update.chat_id)
            return []

        if isinstance(update, CallbackAction):
            return self._route_callback(update)
        if isinstance(update, ReplyMessage):
            return await self._route_reply(update)
        if update.text and update.text.startswith("/"):
            return self._route_command(update)
        return []

    # --- Callback buttons ---

    def _route_callback(self, callback: CallbackAction) -> List[Effect]:
        token = action_tokens.decode(callback.data)
        if token is None or not token.is_known:
            logger.debug("Unknown callback data %r", callback.data)
            return [answer_callback(callback.callback_id)]

        if token.action == action_tokens.QUICK_MESSAGE:
            return self._quick_message(callback, token)
        if token.action == action_tokens.SHOW_QUICK_REPLIES:
            return self._show_quick_replies(callback, token)

        event, notice = CHAT_ACTIONS[token.action]
        admin = callback.sender.as_admin()
        effects: List[Effect] = [
            answer_callback(callback.callback_id, notice),
            ForwardEvent(event, chat_action_event(token.ref, admin, callback.timestamp)),
        ]
        if callback.message_id is not None:
            if token.action == action_tokens.CLOSE:
                effects.append(edit_reply_markup(callback.chat_id, callback.message_id, []))
            elif token.action == action_tokens.ASSIGN:
                keyboard = _without_button(callback.keyboard, callback.data)
                effects.append(edit_reply_markup(callback.chat_id, callback.message_id, keyboard))
        if token.action == action_tokens.CLOSE:
            effects.append(send_text(self.group_id, render_chat_closed(token.ref, admin.name, callback.timestamp, self.config.timezone_name)))
        elif token.action == action_tokens.ASSIGN:
            effects.append(send_text(self.group_id, render_chat_assigned(token.ref, admin.name, callback.timestamp, self.config.timezone_name)))
        return effects

    def _quick_message(self, callback: CallbackAction, token: ActionToken) -> List[Effect]:
        reply = self._canned_reply(token.extra)
        if reply is None:
            return [answer_callback(callback.callback_id, "Quick reply not found.")]

        admin = callback.sender.as_admin()
        content = MessageContent(type=CONTENT_TEXT, text=reply)
        effects: List[Effect] = [
            ForwardEvent(
                main_server.ADMIN_MESSAGE,
                admin_message_event(token.ref, admin, content, callback.timestamp, callback.message_id),
                on_failure=answer_callback(callback.callback_id, "Failed to send quick reply."),
            ),
            answer_callback(callback.callback_id, "Quick reply sent."),
        ]
        if callback.message_id is not None:
            effects.append(edit_text(callback.chat_id, callback.message_id, render_quick_reply_sent(token.ref, reply, admin.name)))
        return effects

    def _show_quick_replies(self, callback: CallbackAction, token: ActionToken) -> List[Effect]:
        try:
            actions = quick_reply_actions(token.ref, self.config.quick_replies)
        except ActionTokenError as exc:
            logger.warning("Cannot build quick replies for %s: %s", token.ref, exc)
            return [answer_callback(callback.callback_id)]
        keyboard = build_inline_keyboard(actions, per_row=1)
        return [
            send_text(self.group_id, render_quick_reply_prompt(token.ref), keyboard),
            answer_callback(callback.callback_id),
        ]

    def _canned_reply(self, extra: Optional[str]) -> Optional[str]:
        if extra is None or not extra.isdigit():
            return None
        index = int(extra)
        if index >= len(self.config.quick_replies):
            return None
        return self.config.quick_replies[index]

    # --- Operator replies ---

    async def _route_reply(self, message: ReplyMessage) -> List[Effect]:
        ref = extract(message.quoted_text)
        if ref is None:
            logger.debug("Reply %s quotes no conversation, dropped", message.message_id)
            return []

        content = await self._reply_content(message)
        if content is None:
            logger.debug("Reply %s has no supported content, dropped", message.message_id)
            return []

        admin = message.sender.as_admin()
        failure_notice = send_text(
            self.group_id,
            f"❌ Failed to deliver the message to the main server\n<code>{embed(ref)}</code>",
        )
        return [
            ForwardEvent(
                main_server.ADMIN_MESSAGE,
                admin_message_event(ref, admin, content, message.timestamp, message.message_id),
                on_failure=failure_notice,
            )
        ]

    async def _reply_content(self, message: PlainMessage) -> Optional[MessageContent]:
        if message.text:
            return MessageContent(type=CONTENT_TEXT, text=message.text)
        if message.photo_file_id:
            return MessageContent(
                type=CONTENT_IMAGE,
                text=message.caption or "",
                file_url=await self.telegram.get_file_url(message.photo_file_id),
                file_name=f"image_{message.message_id}.jpg",
            )
        if message.document:
            return MessageContent(
                type=CONTENT_FILE,
                text=message.caption or "",
                file_url=await self.telegram.get_file_url(message.document.file_id),
                file_name=message.document.file_name,
                file_size=message.document.file_size,
            )
        return None

    # --- Commands ---

    def _route_command(self, message: PlainMessage) -> List[Effect]:
        command = message.text.split()[0][1:].split("@")[0].lower()
        if command in STATUS_COMMANDS:
            return [send_text(message.chat_id, self._status_text())]
        logger.debug("Command /%s has no handler", command)
        return []

    def _status_text(self) -> str:
        state = self.connection.state
        lines = ["✅ Support relay is running."]
        if state.ready:
            bot = f" as @{html.escape(state.bot_username)}" if state.bot_username else ""
            lines.append(f"Telegram channel: ready{bot}")
        else:
            lines.append("Telegram channel: not ready")
        lines.append("Main server: " + ("configured" if self.main_server.configured else "not configured"))
        return "\n".join(lines)


def _without_button(keyboard: List[List[Dict[str, Any]]], callback_data: str) -> List[List[Dict[str, Any]]]:
    rows = []
    for row in keyboard:
        kept = [button for button in row if button.get("callback_data") != callback_data]
        if kept:
            rows.append(kept)
    return rows
