"""Operator console: drive the quiz from standard input."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import Callable, Optional, TextIO

from .errors import PreconditionViolation
from .game import QuizSession
from .models import Phase

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Press Enter to start the quiz, then Enter again for each next question.\n"
    "Commands: start, next, status, quit"
)


class OperatorConsole:
    def __init__(
        self,
        quiz: QuizSession,
        stream: TextIO | None = None,
        on_quit: Optional[Callable[[], None]] = None,
    ):
        self.quiz = quiz
        self.stream = stream or sys.stdin
        self.on_quit = on_quit

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue[Optional[str]] = asyncio.Queue()

        def _reader() -> None:
            # daemon thread: a blocked readline must not hold up process exit
            for line in iter(self.stream.readline, ""):
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)

        threading.Thread(target=_reader, name="operator-console", daemon=True).start()
        print(HELP_TEXT, flush=True)

        while True:
            line = await lines.get()
            if line is None:
                logger.info("Console input closed")
                return
            if not await self.dispatch(line.strip().lower()):
                return

    async def dispatch(self, command: str) -> bool:
        """Run one console command. Returns False when the console should stop."""

        if command == "":
            command = "start" if self.quiz.phase is Phase.IDLE else "next"

        if command == "quit":
            logger.info("Shutdown requested from console")
            if self.on_quit is not None:
                self.on_quit()
            return False
        if command == "status":
            print(self.quiz.snapshot().model_dump_json(indent=2), flush=True)
            return True

        try:
            if command == "start":
                await self.quiz.start()
            elif command == "next":
                await self.quiz.advance()
            else:
                print(f"Unknown command: {command!r}\n{HELP_TEXT}", flush=True)
        except PreconditionViolation as exc:
            logger.warning("%s", exc)
        return True
