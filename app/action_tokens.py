from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.correlation import is_valid_ref

DELIMITER = "_"
# Telegram accepts 1-64 bytes of callback_data.
MAX_TOKEN_BYTES = 64

QUICK_MESSAGE = "quickmsg"
CLOSE = "close"
ASSIGN = "assign"
REPLYING = "replying"
SHOW_QUICK_REPLIES = "quick"

KNOWN_ACTIONS = frozenset({QUICK_MESSAGE, CLOSE, ASSIGN, REPLYING, SHOW_QUICK_REPLIES})


class ActionTokenError(ValueError):
    pass


@dataclass(frozen=True)
class ActionToken:
    """Button payload of the form ``{action}_{ref}[_{extra}]``."""

    action: str
    ref: str
    extra: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.action in KNOWN_ACTIONS

    def encode(self) -> str:
        if not self.action or DELIMITER in self.action:
            raise ActionTokenError(f"Illegal action name: {self.action!r}")
        if not is_valid_ref(self.ref):
            raise ActionTokenError(f"Illegal conversation reference: {self.ref!r}")
        parts = [self.action, self.ref]
        if self.extra is not None:
            if not self.extra or DELIMITER in self.extra:
                raise ActionTokenError(f"Illegal action argument: {self.extra!r}")
            parts.append(self.extra)
        token = DELIMITER.join(parts)
        if len(token.encode("utf-8")) > MAX_TOKEN_BYTES:
            raise ActionTokenError(f"Action token exceeds {MAX_TOKEN_BYTES} bytes: {token!r}")
        return token


def decode(data: Optional[str]) -> Optional[ActionToken]:
    """Parse callback data; malformed payloads yield None."""

    if not data or len(data.encode("utf-8")) > MAX_TOKEN_BYTES:
        return None
    parts = data.split(DELIMITER)
    if len(parts) not in (2, 3) or not parts[0]:
        return None
    if not is_valid_ref(parts[1]):
        return None
    extra = parts[2] if len(parts) == 3 else None
    if extra == "":
        return None
    return ActionToken(action=parts[0], ref=parts[1], extra=extra)


def encode(action: str, ref: str, extra: Optional[str] = None) -> str:
    return ActionToken(action=action, ref=ref, extra=extra).encode()
