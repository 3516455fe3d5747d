from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from app.models import Chat, ChatMessage

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"
MESSAGE_TO_TELEGRAM_SCHEMA = SCHEMA_DIR / "message_to_telegram.schema.json"


class PayloadError(ValueError):
    """The main server sent a message payload the relay cannot render."""


class MessagePayloadParser:
    """Checks a ``{chat, message}`` body and turns it into domain records."""

    def __init__(self, schema_path: str | Path = MESSAGE_TO_TELEGRAM_SCHEMA) -> None:
        with Path(schema_path).open("r", encoding="utf-8") as f:
            self.schema: Dict[str, Any] = json.load(f)
        self._validator = Draft202012Validator(self.schema)

    def parse(self, payload: Any) -> Tuple[Chat, ChatMessage]:
        if not isinstance(payload, dict) or not payload.get("chat") or not payload.get("message"):
            raise PayloadError("Missing 'chat' or 'message' in request body")

        error = best_match(self._validator.iter_errors(payload))
        if error is not None:
            location = "/".join(str(part) for part in error.path) or "body"
            raise PayloadError(f"{location}: {error.message}")

        try:
            return Chat.from_payload(payload["chat"]), ChatMessage.from_payload(payload["message"])
        except ValueError as exc:
            raise PayloadError(str(exc)) from exc
