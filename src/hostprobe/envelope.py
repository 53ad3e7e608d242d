"""Uniform success/message/data/timestamp wrapper for engine results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from hostprobe.config import TIMESTAMP_FORMAT

T = TypeVar("T")


def timestamp(now: datetime | None = None) -> str:
    """Local wall-clock time as YYYY-MM-DD HH:MM:SS."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def to_jsonable(value: Any) -> Any:
    """Render models (and lists/tuples of them) into JSON-ready values."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


@dataclass(slots=True, frozen=True)
class Envelope(Generic[T]):
    """Result wrapper. ``data`` is None exactly when ``success`` is False."""

    success: bool
    message: str
    data: T | None
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Render as the JSON wire shape."""
        return {
            "success": self.success,
            "message": self.message,
            "data": to_jsonable(self.data) if self.success else None,
            "timestamp": self.timestamp,
        }


def wrap(success: bool, message: str, data: T | None = None) -> Envelope[T]:
    """Stamp a result with the current time; failures never carry data."""
    return Envelope(
        success=success,
        message=message,
        data=data if success else None,
        timestamp=timestamp(),
    )


def ok(message: str, data: T) -> Envelope[T]:
    """Successful envelope carrying data."""
    return wrap(True, message, data)


def fail(message: str) -> Envelope[Any]:
    """Failed envelope; data is always None."""
    return wrap(False, message)
