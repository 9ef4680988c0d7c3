"""Error taxonomy shared by the price, store and validation boundaries."""

from enum import StrEnum


class ErrorKind(StrEnum):
    PRICE_FEED = "price_feed"
    STORE = "store"
    VALIDATION = "validation"


class RiskEngineError(Exception):
    """Base error carrying a kind, a human reason and an optional cause."""

    kind: ErrorKind

    def __init__(self, reason: str, cause: BaseException | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.reason}: {self.cause}"
        return self.reason


class PriceFeedError(RiskEngineError):
    """Network failure, non-success status or malformed provider payload."""

    kind = ErrorKind.PRICE_FEED


class StoreError(RiskEngineError):
    """Portfolio or history file unreadable, unwritable or malformed."""

    kind = ErrorKind.STORE


class ValidationError(RiskEngineError):
    """Portfolio or configuration rejected at the boundary."""

    kind = ErrorKind.VALIDATION
