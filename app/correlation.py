"""Conversation reference codec.

The control group has no notion of a conversation, so every message the
relay posts there carries one line naming the conversation it belongs to.
Operators reply to those messages and the reference is read back from the
quoted text. ``embed`` and ``extract`` are the only places that know the
line format.
"""

from __future__ import annotations

import re
from typing import Optional

REF_LABEL = "🆔 Chat ID: "
MAX_REF_LENGTH = 48

_REF_RE = re.compile(r"[A-Za-z0-9-]{1,%d}" % MAX_REF_LENGTH)
_TOKEN_LINE_RE = re.compile(
    r"^[ \t]*" + re.escape(REF_LABEL) + r"([A-Za-z0-9-]{1,%d})[ \t]*$" % MAX_REF_LENGTH,
    re.MULTILINE,
)


class ConversationRefError(ValueError):
    pass


def is_valid_ref(ref: object) -> bool:
    return isinstance(ref, str) and _REF_RE.fullmatch(ref) is not None


def embed(ref: str) -> str:
    """Return the single line that names ``ref`` inside an outbound message."""
    if not is_valid_ref(ref):
        raise ConversationRefError(f"Illegal conversation reference: {ref!r}")
    return f"{REF_LABEL}{ref}"


def extract(text: Optional[str]) -> Optional[str]:
    """Return the first embedded reference found in ``text``, if any.

    The token must occupy a whole line; references quoted inside free text
    do not count.
    """

    if not text:
        return None
    match = _TOKEN_LINE_RE.search(text)
    return match.group(1) if match else None
