"""Exceptions raised by the quiz core."""


class QuizError(Exception):
    pass


class LoadError(QuizError):
    """The question source is missing, unreadable or malformed."""


class UpgradeError(QuizError):
    """A WebSocket handshake could not be completed."""


class DecodeError(QuizError, ValueError):
    """An inbound frame is not a valid participant message."""


class PreconditionViolation(QuizError, ValueError):
    """An operator trigger is not allowed in the current phase."""
