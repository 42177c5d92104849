from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .errors import DecodeError
from .models import Phase


# Inbound participant messages

class JoinMessage(BaseModel):
    type: Literal["join"] = "join"
    name: str


class AnswerMessage(BaseModel):
    type: Literal["answer"] = "answer"
    answer: str


InboundMessage = Annotated[Union[JoinMessage, AnswerMessage], Field(discriminator="type")]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


# Outbound server messages

class WelcomeMessage(BaseModel):
    type: Literal["welcome"] = "welcome"
    message: str


class QuestionMessage(BaseModel):
    type: Literal["question"] = "question"
    question: str
    options: List[str]


class RankMessage(BaseModel):
    type: Literal["rank"] = "rank"
    rank: int


class FeedbackMessage(BaseModel):
    type: Literal["feedback"] = "feedback"
    message: str


class TimeoutMessage(BaseModel):
    type: Literal["timeout"] = "timeout"
    message: str


class EndMessage(BaseModel):
    type: Literal["end"] = "end"
    message: str


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str


OutboundMessage = Union[
    WelcomeMessage,
    QuestionMessage,
    RankMessage,
    FeedbackMessage,
    TimeoutMessage,
    EndMessage,
    ErrorMessage,
]


def decode_inbound(raw: str | bytes) -> JoinMessage | AnswerMessage:
    """Parse one inbound frame, raising ``DecodeError`` for anything malformed."""

    try:
        return _inbound_adapter.validate_json(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'message'}: {err['msg']}" for err in exc.errors()
        )
        raise DecodeError(f"Malformed message ({problems})") from exc


def encode(message: OutboundMessage) -> str:
    return message.model_dump_json()


# Operator HTTP surface

class ParticipantOut(BaseModel):
    id: str
    display_name: str
    rank: int


class PublicSessionOut(BaseModel):
    phase: Phase
    current_question_idx: int
    total_questions: int
    accepting_answers: bool
    participants: List[ParticipantOut]


class ControlOut(BaseModel):
    ok: bool = True
    phase: Phase


class EventOut(BaseModel):
    seq: int
    timestamp: Optional[float] = None
    payload: dict


class EventPageOut(BaseModel):
    events: List[EventOut]
    latest_seq: Optional[int] = None
