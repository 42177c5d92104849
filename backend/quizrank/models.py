from enum import Enum
from typing import Any, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Phase(str, Enum):
    IDLE = "idle"
    QUESTION_OPEN = "question_open"
    QUESTION_CLOSED = "question_closed"
    FINISHED = "finished"


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(validation_alias=AliasChoices("prompt", "question"))
    options: List[str]
    answer: str


class Participant(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    display_name: str
    # 0 until the participant answers the open question correctly
    rank: int = 0
    attempted: bool = False
    handle: Any = Field(default=None, exclude=True, repr=False)


# States: idle -> question_open -> question_closed -> (question_open | finished); any -> idle on reset
class SessionState(BaseModel):
    phase: Phase = Phase.IDLE
    current_question_idx: int = 0
    rank_counter: int = 1
    accepting_answers: bool = False
