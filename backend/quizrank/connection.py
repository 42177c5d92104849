"""Per-participant WebSocket handle with its own outbound queue."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import WebSocket

from .errors import UpgradeError
from .utils import new_id

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, websocket: WebSocket, send_timeout: float = 5.0, outbox_limit: int = 100):
        self.id = new_id()
        self.websocket = websocket
        self.send_timeout = send_timeout
        self._outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=max(1, outbox_limit))
        self._writer: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"Connection({self.id[:8]})"

    async def accept(self) -> None:
        try:
            await self.websocket.accept()
        except Exception as exc:
            raise UpgradeError(f"WebSocket handshake failed: {exc}") from exc
        self._writer = asyncio.create_task(self._drain(), name=f"writer-{self.id[:8]}")

    def send_text(self, text: str) -> None:
        """Queue ``text`` for delivery. Never blocks on the network.

        When the outbox is full the client is not keeping up and the message is dropped.
        """
        try:
            self._outbox.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning("%r: outbox full (%d queued), message dropped", self, self._outbox.qsize())

    async def _drain(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await asyncio.wait_for(self.websocket.send_text(text), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                logger.warning("%r: send timed out after %.1fs, message dropped", self, self.send_timeout)
            except Exception as exc:
                logger.warning("%r: send failed, message dropped: %s", self, exc)

    async def close(self) -> None:
        if self._writer is None:
            return
        self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None
