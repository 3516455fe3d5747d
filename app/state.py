from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ChannelState:
    """Snapshot of the platform channel. Replaced as a whole, never mutated."""

    ready: bool = False
    group_id: Optional[str] = None
    bot_username: Optional[str] = None
    webhook_url: Optional[str] = None
    connected_at: Optional[datetime] = None

    @classmethod
    def disconnected(cls) -> "ChannelState":
        return cls()

    def as_health_payload(self) -> Dict[str, Any]:
        return {
            "ready": self.ready,
            "bot_username": self.bot_username,
            "webhook_registered": bool(self.webhook_url),
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
        }
