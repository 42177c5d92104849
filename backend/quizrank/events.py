from __future__ import annotations

from typing import Any, List

from .utils import now_ts


class EventLog:
    """Keep the session's broadcast history so the operator can poll it over HTTP."""

    def __init__(self):
        self._events: List[dict[str, Any]] = []
        self._seq = 0

    def append(self, payload: dict[str, Any]) -> int:
        """Store a new event and return its sequence number."""

        self._seq += 1
        self._events.append(
            {
                "seq": self._seq,
                "timestamp": now_ts(),
                "payload": payload,
            }
        )
        return self._seq

    def list(self, after: int | None = None, limit: int = 200) -> List[dict[str, Any]]:
        """Return events that occur after the given sequence."""

        events = [e for e in self._events if after is None or e["seq"] > after]
        return [dict(e) for e in events[:limit]]

    def reset(self) -> None:
        """Clear stored events and emit a reset marker."""

        self._events.clear()

        # Sequence numbers keep increasing so pollers holding an old cursor
        # still see the marker and drop derived state.
        self.append({"type": "session_reset"})
