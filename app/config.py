import json
import logging
import os
from dataclasses import dataclass, field
from typing import List


logger = logging.getLogger(__name__)


DEFAULT_QUICK_REPLIES = [
    "Hi! How can I help you?",
    "Please wait a moment, I'm looking into it.",
    "Thanks for reaching out. Is your issue resolved?",
    "For more information, please call our support line.",
]


@dataclass
class Config:
    service_name: str = "support-relay-bot"
    base_url: str = ""
    healthcheck_path: str = "/health"
    log_level: str = "INFO"

    telegram_bot_token: str = ""
    telegram_group_id: str = ""
    telegram_webhook_path: str = "/api/telegram-webhook"
    telegram_webhook_url: str = ""
    telegram_webhook_secret: str = ""
    telegram_timeout_seconds: float = 30
    telegram_setup_timeout_seconds: float = 10
    telegram_auto_connect: bool = True

    main_server_api_url: str = ""
    main_server_api_key: str = ""
    main_server_updates_path: str = "/telegram-updates"
    main_server_timeout_seconds: float = 15

    timezone_name: str = "Asia/Tehran"

    quick_replies: List[str] = field(default_factory=lambda: list(DEFAULT_QUICK_REPLIES))

    @property
    def webhook_url(self) -> str:
        """Public URL the platform should deliver updates to, if known."""
        if self.telegram_webhook_url:
            return self.telegram_webhook_url
        if self.base_url:
            return f"{self.base_url.rstrip('/')}{self.telegram_webhook_path}"
        return ""

    @property
    def main_server_configured(self) -> bool:
        return bool(self.main_server_api_url and self.main_server_api_key)


def _load_quick_replies(raw: str) -> List[str]:
    if not raw:
        return list(DEFAULT_QUICK_REPLIES)
    try:
        replies = json.loads(raw)
    except ValueError as exc:
        logger.error("QUICK_REPLIES is not valid JSON, using defaults: %s", exc)
        return list(DEFAULT_QUICK_REPLIES)
    if not isinstance(replies, list) or not all(isinstance(item, str) and item for item in replies):
        logger.error("QUICK_REPLIES must be a JSON array of non-empty strings, using defaults")
        return list(DEFAULT_QUICK_REPLIES)
    return replies


def load_config() -> Config:
    """Read configuration from environment variables."""

    return Config(
        service_name=os.getenv("SERVICE_NAME", "support-relay-bot"),
        base_url=os.getenv("BASE_URL", ""),
        healthcheck_path=os.getenv("HEALTHCHECK_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        telegram_group_id=os.getenv("TELEGRAM_CHAT_ID", ""),
        telegram_webhook_path=os.getenv("TELEGRAM_WEBHOOK_PATH", "/api/telegram-webhook"),
        telegram_webhook_url=os.getenv("TELEGRAM_WEBHOOK_URL", ""),
        telegram_webhook_secret=os.getenv("TELEGRAM_WEBHOOK_SECRET", ""),
        telegram_timeout_seconds=float(os.getenv("TELEGRAM_TIMEOUT_SECONDS", "30")),
        telegram_setup_timeout_seconds=float(os.getenv("TELEGRAM_SETUP_TIMEOUT_SECONDS", "10")),
        telegram_auto_connect=os.getenv("TELEGRAM_AUTO_CONNECT", "true").lower() == "true",
        main_server_api_url=os.getenv("MAIN_SERVER_API_URL", ""),
        main_server_api_key=os.getenv("MAIN_SERVER_API_KEY", ""),
        main_server_updates_path=os.getenv("MAIN_SERVER_UPDATES_PATH", "/telegram-updates"),
        main_server_timeout_seconds=float(os.getenv("MAIN_SERVER_TIMEOUT_SECONDS", "15")),
        timezone_name=os.getenv("TZ", "Asia/Tehran"),
        quick_replies=_load_quick_replies(os.getenv("QUICK_REPLIES", "")),
    )
