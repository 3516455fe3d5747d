from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple


class FakeTelegram:
    """Records Bot API calls; ``results`` maps method name to the returned result."""

    def __init__(self, results: Optional[Dict[str, Any]] = None) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.results = results or {}

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        self.calls.append((method, params or {}))
        return self.results.get(method, True)

    async def get_file_url(self, file_id: str) -> Optional[str]:
        self.calls.append(("getFile", {"file_id": file_id}))
        return f"https://api.telegram.org/file/botTOKEN/{file_id}.bin"

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]


class FakeMainServer:
    def __init__(self, delivered: bool = True, configured: bool = True) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.delivered = delivered
        self.configured = configured

    async def forward_update(self, event: str, data: Dict[str, Any]) -> bool:
        self.events.append((event, data))
        return self.delivered
