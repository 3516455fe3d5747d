from __future__ import annotations

import logging
from typing import Optional

from app.action_tokens import ActionTokenError
from app.clients.telegram import TelegramClient
from app.correlation import ConversationRefError
from app.formatting import ActionPolicy, DefaultActionPolicy, build_inline_keyboard, build_outbound
from app.models import CONTENT_FILE, CONTENT_IMAGE, Chat, ChatMessage
from app.services.connection import ConnectionService
from app.time_utils import DEFAULT_TZ_NAME

logger = logging.getLogger(__name__)


class OutboundDispatcher:
    """Posts conversation messages from the main server into the control group."""

    def __init__(
        self,
        telegram: TelegramClient,
        connection: ConnectionService,
        policy: Optional[ActionPolicy] = None,
        tz_name: str = DEFAULT_TZ_NAME,
    ):
        self.telegram = telegram
        self.connection = connection
        self.policy = policy or DefaultActionPolicy()
        self.tz_name = tz_name

    async def send_to_conversation_channel(self, chat: Chat, message: ChatMessage) -> Optional[int]:
        state = self.connection.state
        if not state.ready or not state.group_id:
            logger.info("Telegram channel not ready, not sending chat %s", chat.chat_id)
            return None

        try:
            outbound = build_outbound(chat, message, self.policy, self.tz_name)
        except (ConversationRefError, ActionTokenError) as exc:
            logger.error("Cannot render message for chat %s: %s", chat.chat_id, exc)
            return None

        keyboard = build_inline_keyboard(outbound.actions)
        if outbound.kind == CONTENT_IMAGE:
            sent = await self.telegram.send_photo(state.group_id, outbound.media_url, outbound.text, keyboard)
        elif outbound.kind == CONTENT_FILE:
            sent = await self.telegram.send_document(state.group_id, outbound.media_url, outbound.text, keyboard)
        else:
            sent = await self.telegram.send_message(state.group_id, outbound.text, keyboard)

        if not sent:
            logger.error("Sending chat %s to Telegram failed", chat.chat_id)
            return None
        return sent.get("message_id")
