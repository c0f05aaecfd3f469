import asyncio
import json
from typing import Any, Dict, List

import pytest

from roomplay.config import Settings
from roomplay.rooms import RoomManager


class MockWebSocket:
    """Records every frame the server sends to one client."""

    def __init__(self, fail: bool = False):
        self.messages_sent: List[str] = []
        self.fail = fail
        self.closed = False

    async def send_text(self, message: str) -> None:
        if self.fail:
            raise RuntimeError("Connection closed")
        self.messages_sent.append(message)

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    @property
    def received(self) -> List[Dict[str, Any]]:
        return [json.loads(m) for m in self.messages_sent]

    def of_type(self, kind: str) -> List[Dict[str, Any]]:
        return [m for m in self.received if m["type"] == kind]

    def last(self, kind: str = "STATE") -> Dict[str, Any]:
        return self.of_type(kind)[-1]


class GatedWebSocket(MockWebSocket):
    """A slow client: sends block while ``gate`` is cleared."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()

    async def send_text(self, message: str) -> None:
        await self.gate.wait()
        await super().send_text(message)


@pytest.fixture
def manager():
    return RoomManager(Settings())


@pytest.fixture
def make_ws():
    def _make(fail: bool = False) -> MockWebSocket:
        return MockWebSocket(fail=fail)
    return _make
