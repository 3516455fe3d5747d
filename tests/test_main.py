from __future__ import annotations

import importlib
import os
import sys
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

ENV = {
    "MAIN_SERVER_API_URL": "https://main.example",
    "MAIN_SERVER_API_KEY": "secret",
    "TELEGRAM_BOT_TOKEN": "",
    "TELEGRAM_CHAT_ID": "-100",
    "TELEGRAM_WEBHOOK_SECRET": "",
    "TZ": "UTC",
}

with mock.patch.dict(os.environ, ENV):
    sys.modules.pop("main", None)
    main = importlib.import_module("main")

CHAT = {"chatId": "abc-123", "user": {"name": "Sara"}, "tags": []}
MESSAGE = {"content": {"type": "text", "text": "hello"}, "timestamp": "2024-05-01T10:00:00Z"}


class WebhookEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(main.app)

    def test_updates_are_always_acknowledged(self) -> None:
        with mock.patch.object(main.router.runner, "apply", mock.AsyncMock(side_effect=RuntimeError("boom"))):
            response = self.client.post(
                "/api/telegram-webhook",
                json={"update_id": 1, "message": {"message_id": 1, "chat": {"id": -100}, "text": "/start"}},
            )

        self.assertEqual(200, response.status_code)
        self.assertEqual({"ok": True}, response.json())

    def test_invalid_json_is_rejected(self) -> None:
        response = self.client.post(
            "/api/telegram-webhook", content=b"not json", headers={"content-type": "application/json"}
        )
        self.assertEqual(400, response.status_code)

    def test_secret_token_is_checked_when_configured(self) -> None:
        with mock.patch.object(main.config, "telegram_webhook_secret", "s3"):
            denied = self.client.post("/api/telegram-webhook", json={"update_id": 1})
            allowed = self.client.post(
                "/api/telegram-webhook",
                json={"update_id": 1},
                headers={"X-Telegram-Bot-Api-Secret-Token": "s3"},
            )

        self.assertEqual(401, denied.status_code)
        self.assertEqual(200, allowed.status_code)


class MessageToTelegramEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(main.app)
        self.headers = {"x-api-key": "secret"}

    def test_rejects_bad_api_key(self) -> None:
        for headers in ({}, {"x-api-key": "wrong"}):
            with self.subTest(headers=headers):
                response = self.client.post("/api/message-to-telegram", json={"chat": CHAT, "message": MESSAGE}, headers=headers)
                self.assertEqual(401, response.status_code)

    def test_missing_fields_and_schema_violations(self) -> None:
        response = self.client.post("/api/message-to-telegram", json={"chat": CHAT}, headers=self.headers)
        self.assertEqual(400, response.status_code)

        bad_chat = dict(CHAT, chatId="has_underscore")
        response = self.client.post("/api/message-to-telegram", json={"chat": bad_chat, "message": MESSAGE}, headers=self.headers)
        self.assertEqual(400, response.status_code)
        self.assertFalse(response.json()["success"])

    def test_out_of_range_timestamp_is_rejected(self) -> None:
        message = dict(MESSAGE, timestamp=1e20)
        response = self.client.post("/api/message-to-telegram", json={"chat": CHAT, "message": message}, headers=self.headers)

        self.assertEqual(400, response.status_code)
        self.assertFalse(response.json()["success"])

    def test_successful_send_returns_message_id(self) -> None:
        send = mock.AsyncMock(return_value=4242)
        with mock.patch.object(main.dispatcher, "send_to_conversation_channel", send):
            response = self.client.post("/api/message-to-telegram", json={"chat": CHAT, "message": MESSAGE}, headers=self.headers)

        self.assertEqual(200, response.status_code)
        self.assertEqual({"success": True, "telegramMessageId": 4242}, response.json())
        chat, message = send.await_args.args
        self.assertEqual("abc-123", chat.chat_id)
        self.assertEqual("hello", message.content.text)

    def test_channel_not_ready_is_reported(self) -> None:
        response = self.client.post("/api/message-to-telegram", json={"chat": CHAT, "message": MESSAGE}, headers=self.headers)

        self.assertEqual(500, response.status_code)
        self.assertEqual({"success": False, "error": "Failed to send message to Telegram"}, response.json())


class HealthEndpointTests(unittest.TestCase):
    def test_reports_degraded_until_connected(self) -> None:
        response = TestClient(main.app).get("/health")

        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("degraded", body["status"])
        self.assertFalse(body["telegram"]["ready"])
        self.assertTrue(body["main_server_configured"])


if __name__ == "__main__":
    unittest.main()
