from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path

import httpx

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.clients.main_server import MainServerClient
from app.clients.telegram import TelegramClient


class TelegramClientTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.requests = []
        self.responses = {}

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            method = request.url.path.rsplit("/", 1)[-1]
            status, body = self.responses.get(method, (200, {"ok": True, "result": True}))
            if isinstance(body, Exception):
                raise body
            return httpx.Response(status, json=body)

        self.client = TelegramClient("TOKEN", transport=httpx.MockTransport(handler))

    async def asyncTearDown(self) -> None:
        await self.client.aclose()

    async def test_send_message_posts_html_with_keyboard(self) -> None:
        self.responses["sendMessage"] = (200, {"ok": True, "result": {"message_id": 9}})
        keyboard = {"inline_keyboard": [[{"text": "x", "callback_data": "close_a"}]]}

        result = await self.client.send_message("-100", "<b>hi</b>", keyboard)

        self.assertEqual({"message_id": 9}, result)
        request = self.requests[0]
        self.assertEqual("/botTOKEN/sendMessage", request.url.path)
        self.assertEqual(
            {"chat_id": "-100", "text": "<b>hi</b>", "parse_mode": "HTML", "reply_markup": keyboard},
            json.loads(request.content),
        )

    async def test_api_error_and_network_error_return_none(self) -> None:
        self.responses["sendMessage"] = (400, {"ok": False, "description": "Bad Request: chat not found"})
        self.assertIsNone(await self.client.send_message("-100", "hi"))

        self.responses["sendPhoto"] = (200, httpx.ConnectError("down"))
        self.assertIsNone(await self.client.send_photo("-100", "https://x/p.jpg", "caption"))

    async def test_get_file_url(self) -> None:
        self.responses["getFile"] = (200, {"ok": True, "result": {"file_id": "f", "file_path": "photos/file_1.jpg"}})

        url = await self.client.get_file_url("f")

        self.assertEqual("https://api.telegram.org/file/botTOKEN/photos/file_1.jpg", url)

    async def test_set_webhook_passes_secret(self) -> None:
        self.assertTrue(await self.client.set_webhook("https://relay/hook", ["message"], secret_token="s3"))

        body = json.loads(self.requests[0].content)
        self.assertEqual("s3", body["secret_token"])
        self.assertTrue(body["drop_pending_updates"])

    async def test_missing_token_skips_calls(self) -> None:
        client = TelegramClient("", transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        try:
            self.assertIsNone(await client.call("answerCallbackQuery", {"callback_query_id": "cbq"}))
        finally:
            await client.aclose()


class MainServerClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_forward_posts_event_with_api_key(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"received": True})

        client = MainServerClient("https://main.example/api/", "secret", transport=httpx.MockTransport(handler))
        try:
            delivered = await client.forward_update("chat_close", {"chatId": "abc-123"})
        finally:
            await client.aclose()

        self.assertTrue(delivered)
        request = seen[0]
        self.assertEqual("https://main.example/api/telegram-updates", str(request.url))
        self.assertEqual("secret", request.headers["x-api-key"])
        self.assertEqual({"event": "chat_close", "data": {"chatId": "abc-123"}}, json.loads(request.content))

    async def test_forward_failures_return_false(self) -> None:
        client = MainServerClient("https://main.example", "secret", transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        try:
            self.assertFalse(await client.forward_update("admin_message", {"chatId": "a"}))
        finally:
            await client.aclose()

    async def test_unconfigured_client_does_not_send(self) -> None:
        calls = []
        client = MainServerClient("", "", transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200)))
        try:
            self.assertFalse(await client.forward_update("admin_message", {"chatId": "a"}))
        finally:
            await client.aclose()
        self.assertEqual([], calls)


if __name__ == "__main__":
    unittest.main()
