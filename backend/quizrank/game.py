from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .broadcast import Broadcaster
from .config import Settings, settings as default_settings
from .errors import DecodeError, PreconditionViolation
from .events import EventLog
from .models import Participant, Phase, Question, SessionState
from .questions import QuestionStore
from .registry import ParticipantRegistry
from .schemas import (
    AnswerMessage,
    EndMessage,
    ErrorMessage,
    FeedbackMessage,
    JoinMessage,
    ParticipantOut,
    PublicSessionOut,
    QuestionMessage,
    RankMessage,
    TimeoutMessage,
    WelcomeMessage,
    decode_inbound,
)

logger = logging.getLogger(__name__)


class QuizSession:
    """Single quiz session: phase, question cursor, rank counter and answer window.

    Every mutation runs under ``self._lock``, including the window timeout, so a
    timeout can never interleave with a rank assignment or a reset.
    """

    def __init__(
        self,
        questions: QuestionStore,
        config: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        config = config or default_settings
        self.questions = questions
        self.window_seconds = config.ANSWER_WINDOW_SECONDS
        self.min_participants = max(1, config.MIN_PARTICIPANTS)
        self.retry_after_wrong = config.RETRY_AFTER_WRONG
        self.texts = config

        self.state = SessionState()
        self.event_log = EventLog()
        self.registry = ParticipantRegistry(on_empty=self._reset_locked)
        self.broadcaster = Broadcaster(self.registry, self.event_log)

        self._lock = asyncio.Lock()
        self._window_task: Optional[asyncio.Task] = None
        self._window_seq = 0
        self._sleep = sleep

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def current_question(self) -> Question | None:
        idx = self.state.current_question_idx
        if 0 <= idx < len(self.questions):
            return self.questions[idx]
        return None

    # ---- participant traffic ----

    async def handle_message(self, handle: Any, raw: str | bytes) -> None:
        try:
            msg = decode_inbound(raw)
        except DecodeError as exc:
            logger.info("Rejected message from %r: %s", handle, exc)
            self.broadcaster.send(handle, ErrorMessage(message=str(exc)))
            return

        if isinstance(msg, JoinMessage):
            await self.join(handle, msg.name)
        elif isinstance(msg, AnswerMessage):
            await self.submit_answer(handle, msg.answer)

    async def join(self, handle: Any, name: str) -> Participant:
        async with self._lock:
            self.registry.register(name, handle)
            p = self.registry.resolve(handle)
            assert p is not None
            self.broadcaster.send(handle, WelcomeMessage(message=self.texts.WELCOME_MESSAGE.format(name=name)))

            # late joiners still get the open question
            if self.state.phase is Phase.QUESTION_OPEN and self.current_question is not None:
                q = self.current_question
                self.broadcaster.send(handle, QuestionMessage(question=q.prompt, options=list(q.options)))
            return p

    async def leave(self, handle: Any) -> None:
        async with self._lock:
            self.registry.unregister(handle)

    async def submit_answer(self, handle: Any, answer: str) -> int | None:
        """Evaluate one answer.

        Returns the assigned rank for a correct answer, ``0`` for a wrong one and
        ``None`` when the submission was dropped (no open question, unknown
        handle, or the participant already used its attempt).
        """

        async with self._lock:
            if self.state.phase is not Phase.QUESTION_OPEN or not self.state.accepting_answers:
                return None

            p = self.registry.resolve(handle)
            if p is None:
                logger.debug("Answer from unregistered connection %r ignored", handle)
                return None
            if p.rank != 0 or p.attempted:
                return None

            q = self.current_question
            assert q is not None
            if answer == q.answer:
                p.rank = self.state.rank_counter
                p.attempted = True
                self.state.rank_counter += 1
                self.broadcaster.send(handle, RankMessage(rank=p.rank))
                logger.info("%s answered correctly, rank %d", p.display_name, p.rank)
                return p.rank

            if not self.retry_after_wrong:
                p.attempted = True
            self.broadcaster.send(handle, FeedbackMessage(message=self.texts.WRONG_ANSWER_MESSAGE))
            logger.info("%s answered incorrectly", p.display_name)
            return 0

    # ---- operator triggers ----

    async def start(self) -> Phase:
        async with self._lock:
            if self.state.phase is not Phase.IDLE:
                raise PreconditionViolation("Cannot start: the quiz has already started")
            if len(self.registry) < self.min_participants:
                raise PreconditionViolation(
                    f"Cannot start: need at least {self.min_participants} participant(s), "
                    f"{len(self.registry)} connected"
                )
            if not len(self.questions):
                raise PreconditionViolation("Cannot start: no questions loaded")

            self.state.current_question_idx = 0
            self.state.rank_counter = 1
            self.registry.reset_ranks()
            logger.info("Starting quiz with %d participant(s)", len(self.registry))
            self._open_question()
            return self.state.phase

    async def advance(self) -> Phase:
        async with self._lock:
            phase = self.state.phase
            if phase is Phase.IDLE:
                raise PreconditionViolation("Cannot advance: the quiz has not started")
            if phase is Phase.QUESTION_OPEN:
                raise PreconditionViolation(
                    f"Cannot advance: question {self.state.current_question_idx + 1} is still open"
                )
            if phase is Phase.FINISHED:
                raise PreconditionViolation("Cannot advance: the quiz is over")

            if self.state.current_question_idx >= len(self.questions):
                self._finish()
            else:
                self._open_question()
            return self.state.phase

    async def reset(self) -> None:
        async with self._lock:
            self._reset_locked()

    # ---- transitions (lock held) ----

    def _open_question(self) -> None:
        q = self.questions[self.state.current_question_idx]
        self.state.accepting_answers = True
        self.state.phase = Phase.QUESTION_OPEN
        self.broadcaster.broadcast(QuestionMessage(question=q.prompt, options=list(q.options)))
        logger.info("Question %d/%d sent: %s", self.state.current_question_idx + 1, len(self.questions), q.prompt)
        self._arm_window()

    def _close_window(self) -> None:
        self.state.accepting_answers = False
        self.broadcaster.broadcast(TimeoutMessage(message=self.texts.TIMEOUT_MESSAGE))
        self.registry.reset_ranks()
        self.state.rank_counter = 1
        self.state.current_question_idx += 1
        self.state.phase = Phase.QUESTION_CLOSED
        self._window_task = None
        logger.info("Answer window closed (%d/%d done)", self.state.current_question_idx, len(self.questions))

    def _finish(self) -> None:
        self.state.accepting_answers = False
        self.state.phase = Phase.FINISHED
        self.broadcaster.broadcast(EndMessage(message=self.texts.END_MESSAGE))
        logger.info("All questions done, quiz finished")

    def _reset_locked(self) -> None:
        self._cancel_window()
        self.state = SessionState()
        self.registry.reset_ranks()
        self.event_log.reset()
        logger.info("Session reset to idle")

    # ---- answer window ----

    def _arm_window(self) -> None:
        self._cancel_window()
        self._window_seq += 1
        self._window_task = asyncio.create_task(self._run_window(self._window_seq), name="answer-window")

    def _cancel_window(self) -> None:
        # bumping the sequence also invalidates a timer already waiting on the lock
        self._window_seq += 1
        task, self._window_task = self._window_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_window(self, seq: int) -> None:
        await self._sleep(self.window_seconds)
        async with self._lock:
            if seq != self._window_seq or self.state.phase is not Phase.QUESTION_OPEN:
                return
            self._close_window()

    async def wait_window(self) -> None:
        """Wait until the pending answer window (if any) has fired or been cancelled."""
        task = self._window_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # ---- views ----

    def snapshot(self) -> PublicSessionOut:
        return PublicSessionOut(
            phase=self.state.phase,
            current_question_idx=self.state.current_question_idx,
            total_questions=len(self.questions),
            accepting_answers=self.state.accepting_answers,
            participants=[
                ParticipantOut(id=p.id, display_name=p.display_name, rank=p.rank) for p in self.registry.all()
            ],
        )
