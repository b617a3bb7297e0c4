"""Exception types raised by the orchestration core."""


class EchoChamberError(Exception):
    """Base class for debate engine errors."""


class InvalidRequestError(EchoChamberError):
    """Raised when a session is started without a query or without personas."""


class InsufficientHistoryError(EchoChamberError):
    """Raised when a summary or synthesis is requested with too few entries."""

    def __init__(self, step: str, have: int, need: int = 2) -> None:
        self.step = step
        self.have = have
        self.need = need
        super().__init__(f"{step} needs at least {need} debate entries, got {have}")
