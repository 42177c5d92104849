from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .models import Participant
from .utils import new_id

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Connected participants in registration order, keyed by handle identity.

    Callers are expected to hold the session lock; the registry does no locking of its own.
    """

    def __init__(self, on_empty: Optional[Callable[[], None]] = None):
        self._participants: List[Participant] = []
        self._on_empty = on_empty

    def register(self, name: str, handle: Any) -> str:
        existing = self.resolve(handle)
        if existing is not None:
            # one entry per handle; a repeated join only renames
            existing.display_name = name
            return existing.id

        p = Participant(id=new_id(), display_name=name, handle=handle)
        self._participants.append(p)
        logger.info("%s joined (%d connected)", p.display_name, len(self._participants))
        return p.id

    def unregister(self, handle: Any) -> Optional[Participant]:
        p = self.resolve(handle)
        if p is None:
            return None

        self._participants.remove(p)
        logger.info("%s left (%d connected)", p.display_name, len(self._participants))
        if not self._participants and self._on_empty is not None:
            self._on_empty()
        return p

    def resolve(self, handle: Any) -> Optional[Participant]:
        for p in self._participants:
            if p.handle is handle:
                return p
        return None

    def all(self) -> List[Participant]:
        return list(self._participants)

    def reset_ranks(self) -> None:
        for p in self._participants:
            p.rank = 0
            p.attempted = False

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, handle: Any) -> bool:
        return self.resolve(handle) is not None
