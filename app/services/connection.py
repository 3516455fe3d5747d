from __future__ import annotations

import asyncio
import logging

from app.clients.telegram import TelegramClient
from app.config import Config
from app.state import ChannelState
from app.time_utils import now_utc

logger = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message", "callback_query"]


class ConnectionService:
    """Owns the platform channel lifecycle and publishes its ChannelState."""

    def __init__(self, config: Config, telegram: TelegramClient):
        self.config = config
        self.telegram = telegram
        self._state = ChannelState.disconnected()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ChannelState:
        return self._state

    async def connect(self) -> bool:
        if self._lock.locked():
            logger.info("Telegram connect already in progress")
            return False

        async with self._lock:
            await self._teardown()

            if not self.config.telegram_bot_token or not self.config.telegram_group_id:
                logger.error("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set, outbound sends are disabled")
                return False

            logger.info("Testing bot connection")
            me = await self.telegram.get_me()
            if not me:
                logger.error("Bot token rejected or Telegram unreachable")
                return False
            username = me.get("username")
            logger.info("Bot connected as @%s", username)

            webhook_url = self.config.webhook_url or None
            if webhook_url:
                registered = await self.telegram.set_webhook(
                    webhook_url,
                    ALLOWED_UPDATES,
                    secret_token=self.config.telegram_webhook_secret,
                )
                if not registered:
                    logger.error("Failed to set webhook to %s", webhook_url)
                    return False
                logger.info("Webhook set to %s", webhook_url)
            else:
                logger.warning("No webhook URL configured, assuming the webhook is registered externally")

            self._state = ChannelState(
                ready=True,
                group_id=self.config.telegram_group_id,
                bot_username=username,
                webhook_url=webhook_url,
                connected_at=now_utc(),
            )
            return True

    async def disconnect(self) -> None:
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        previous = self._state
        self._state = ChannelState.disconnected()
        if previous.ready and previous.webhook_url:
            logger.info("Removing webhook")
            if not await self.telegram.delete_webhook():
                logger.warning("Webhook removal failed")
