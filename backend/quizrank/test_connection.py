from __future__ import annotations

import asyncio
from unittest import IsolatedAsyncioTestCase

from .connection import Connection
from .errors import UpgradeError


class _FakeWebSocket:
    def __init__(self, *, accept_error: Exception | None = None, fail_on: set[str] | None = None, hang_on: set[str] | None = None):
        self.accept_error = accept_error
        self.fail_on = fail_on or set()
        self.hang_on = hang_on or set()
        self.accepted = False
        self.sent: list[str] = []

    async def accept(self):
        if self.accept_error:
            raise self.accept_error
        self.accepted = True

    async def send_text(self, text: str):
        if text in self.fail_on:
            raise RuntimeError("connection reset")
        if text in self.hang_on:
            await asyncio.sleep(3600)
        self.sent.append(text)


async def _drained(conn: Connection) -> None:
    for _ in range(100):
        if conn._outbox.empty():
            break
        await asyncio.sleep(0.01)
    await asyncio.sleep(0.01)


class ConnectionTests(IsolatedAsyncioTestCase):
    async def test_accept_failure_raises_upgrade_error(self):
        conn = Connection(_FakeWebSocket(accept_error=RuntimeError("bad handshake")))

        with self.assertRaises(UpgradeError):
            await conn.accept()
        await conn.close()

    async def test_messages_are_delivered_in_order(self):
        ws = _FakeWebSocket()
        conn = Connection(ws)
        await conn.accept()

        for text in ("one", "two", "three"):
            conn.send_text(text)
        await _drained(conn)

        self.assertEqual(ws.sent, ["one", "two", "three"])
        await conn.close()

    async def test_failed_write_is_dropped_without_stopping_the_writer(self):
        ws = _FakeWebSocket(fail_on={"boom"})
        conn = Connection(ws)
        await conn.accept()

        with self.assertLogs("backend.quizrank.connection", level="WARNING"):
            conn.send_text("boom")
            conn.send_text("after")
            await _drained(conn)

        self.assertEqual(ws.sent, ["after"])
        await conn.close()

    async def test_slow_write_times_out(self):
        ws = _FakeWebSocket(hang_on={"slow"})
        conn = Connection(ws, send_timeout=0.05)
        await conn.accept()

        with self.assertLogs("backend.quizrank.connection", level="WARNING"):
            conn.send_text("slow")
            conn.send_text("fast")
            await asyncio.sleep(0.2)

        self.assertEqual(ws.sent, ["fast"])
        await conn.close()

    async def test_send_text_never_blocks(self):
        ws = _FakeWebSocket(hang_on={"slow"})
        conn = Connection(ws, send_timeout=60)
        await conn.accept()

        conn.send_text("slow")
        for i in range(50):
            conn.send_text(str(i))

        self.assertEqual(ws.sent, [])
        await conn.close()

    async def test_outbox_stops_growing_at_its_limit(self):
        ws = _FakeWebSocket(hang_on={"slow"})
        conn = Connection(ws, send_timeout=60, outbox_limit=10)
        await conn.accept()
        conn.send_text("slow")
        await asyncio.sleep(0.01)

        with self.assertLogs("backend.quizrank.connection", level="WARNING") as logs:
            for i in range(1000):
                conn.send_text(str(i))

        self.assertEqual(conn._outbox.qsize(), 10)
        self.assertIn("outbox full", logs.output[0])
        await conn.close()
