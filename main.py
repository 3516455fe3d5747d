import hmac
import logging
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from app.clients.main_server import MainServerClient
from app.clients.telegram import TelegramClient
from app.config import load_config
from app.handlers.telegram_router import TelegramRouter
from app.payload_validation import MessagePayloadParser, PayloadError
from app.services.connection import ConnectionService
from app.services.dispatcher import OutboundDispatcher


# =========================
# Basic config
# =========================

config = load_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(config.service_name)

app = FastAPI()

TZ_INFO = ZoneInfo(config.timezone_name)
START_TIME = datetime.now(timezone.utc)

# Clients
telegram_client = TelegramClient(
    config.telegram_bot_token,
    timeout=config.telegram_timeout_seconds,
    setup_timeout=config.telegram_setup_timeout_seconds,
)
main_server_client = MainServerClient(
    config.main_server_api_url,
    config.main_server_api_key,
    updates_path=config.main_server_updates_path,
    timeout=config.main_server_timeout_seconds,
)

# Services and router
connection = ConnectionService(config, telegram_client)
dispatcher = OutboundDispatcher(telegram_client, connection, tz_name=config.timezone_name)
router = TelegramRouter(config, telegram_client, main_server_client, connection)
payload_parser = MessagePayloadParser()


def _authorized(api_key: Optional[str]) -> bool:
    expected = config.main_server_api_key
    if not expected or not api_key:
        return False
    return hmac.compare_digest(api_key.encode("utf-8"), expected.encode("utf-8"))


def _unauthorized() -> JSONResponse:
    return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)


# =========================
# Healthcheck
# =========================

@app.get(config.healthcheck_path)
async def healthcheck():
    """
    Healthcheck endpoint.
    Reports the cached channel state, never calls external APIs.
    """

    state = connection.state
    now_utc = datetime.now(timezone.utc)
    return {
        "status": "ok" if state.ready else "degraded",
        "service": config.service_name,
        "time": datetime.now(TZ_INFO).isoformat(),
        "timezone": config.timezone_name,
        "uptime_seconds": int((now_utc - START_TIME).total_seconds()),
        "telegram": state.as_health_payload(),
        "main_server_configured": main_server_client.configured,
    }


# =========================
# Telegram webhook
# =========================

@app.post(config.telegram_webhook_path)
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    """
    Telegram webhook entrypoint. Always acknowledges accepted updates.
    """
    if config.telegram_webhook_secret and not hmac.compare_digest(
        (x_telegram_bot_api_secret_token or "").encode("utf-8"),
        config.telegram_webhook_secret.encode("utf-8"),
    ):
        return JSONResponse({"ok": False}, status_code=401)

    try:
        update = await request.json()
    except ValueError:
        return JSONResponse({"ok": False, "error": "Invalid JSON"}, status_code=400)
    if not isinstance(update, dict):
        return JSONResponse({"ok": False, "error": "Update must be an object"}, status_code=400)

    logger.debug("Received Telegram update: %s", update.get("update_id"))

    result = await router.handle_update(update)
    return JSONResponse(result)


# =========================
# Main server API
# =========================

@app.post("/api/message-to-telegram")
async def message_to_telegram(request: Request, x_api_key: Optional[str] = Header(default=None)):
    if not _authorized(x_api_key):
        return _unauthorized()

    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse({"success": False, "error": "Invalid JSON"}, status_code=400)

    try:
        chat, message = payload_parser.parse(payload)
    except PayloadError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

    telegram_message_id = await dispatcher.send_to_conversation_channel(chat, message)
    if telegram_message_id is None:
        return JSONResponse({"success": False, "error": "Failed to send message to Telegram"}, status_code=500)
    return {"success": True, "telegramMessageId": telegram_message_id}


@app.post("/api/telegram/reconnect")
async def reconnect(x_api_key: Optional[str] = Header(default=None)):
    if not _authorized(x_api_key):
        return _unauthorized()

    success = await connection.connect()
    return {"success": success, "ready": connection.state.ready}


# =========================
# App lifecycle
# =========================

@app.on_event("startup")
async def on_startup():
    logger.info("Service starting up in timezone %s", config.timezone_name)

    if config.telegram_auto_connect and config.telegram_bot_token:
        await connection.connect()
    else:
        logger.warning("Telegram auto-connect skipped, outbound sends stay disabled until /api/telegram/reconnect")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Service shutting down")
    await connection.disconnect()
    await telegram_client.aclose()
    await main_server_client.aclose()
