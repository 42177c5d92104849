from __future__ import annotations

import logging
from typing import Any

from .events import EventLog
from .registry import ParticipantRegistry
from .schemas import OutboundMessage, encode

logger = logging.getLogger(__name__)


class Broadcaster:
    """Fan messages out to registered participants.

    A failure on one handle is logged and skipped; it never removes the participant
    and never reaches the caller.
    """

    def __init__(self, registry: ParticipantRegistry, event_log: EventLog | None = None):
        self.registry = registry
        self.event_log = event_log

    def broadcast(self, message: OutboundMessage) -> int:
        text = encode(message)
        if self.event_log is not None:
            self.event_log.append(message.model_dump())

        delivered = 0
        for p in self.registry.all():
            if self._write(p.handle, text):
                delivered += 1
        return delivered

    def send(self, handle: Any, message: OutboundMessage) -> bool:
        return self._write(handle, encode(message))

    def _write(self, handle: Any, text: str) -> bool:
        try:
            handle.send_text(text)
        except Exception as exc:
            logger.warning("Delivery to %r failed: %s", handle, exc)
            return False
        return True
