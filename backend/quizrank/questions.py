"""Ordered, read-only question sets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Sequence

from pydantic import TypeAdapter, ValidationError

from .errors import LoadError
from .models import Question

logger = logging.getLogger(__name__)

_question_list_adapter = TypeAdapter(List[Question])

SAMPLE_QUESTIONS: tuple[Question, ...] = (
    Question(prompt="What is the capital of Japan?", options=["Tokyo", "Osaka", "Kyoto"], answer="Tokyo"),
    Question(prompt="2 + 2 = ?", options=["3", "4", "5"], answer="4"),
)


class QuestionStore:
    """Questions in presentation order. Nothing mutates the store once it is built."""

    def __init__(self, questions: Sequence[Question] = ()):
        self._questions: tuple[Question, ...] = tuple(questions)
        for idx, q in enumerate(self._questions):
            if q.answer not in q.options:
                logger.warning("Question %d (%r) has an answer that is not among its options", idx, q.prompt)

    @classmethod
    def load(cls, source: str | Path) -> "QuestionStore":
        """Read a JSON list of ``{prompt|question, options, answer}`` records."""

        path = Path(source)
        try:
            raw = path.read_bytes()
        except FileNotFoundError as exc:
            raise LoadError(f"Question source not found: {path}") from exc
        except OSError as exc:
            raise LoadError(f"Question source could not be read: {path}: {exc}") from exc

        try:
            questions = _question_list_adapter.validate_json(raw)
        except ValidationError as exc:
            raise LoadError(f"Question source is not a list of question records: {path}: {exc}") from exc

        logger.info("Loaded %d question(s) from %s", len(questions), path)
        return cls(questions)

    @classmethod
    def sample(cls) -> "QuestionStore":
        return cls(SAMPLE_QUESTIONS)

    def __len__(self) -> int:
        return len(self._questions)

    def __getitem__(self, idx: int) -> Question:
        return self._questions[idx]

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)


def load_questions(source: str | Path | None) -> QuestionStore:
    if source is None:
        logger.info("No question source configured, serving the built-in sample set")
        return QuestionStore.sample()
    return QuestionStore.load(source)
