"""Exceptions raised by the telemetry engine."""


class HostprobeError(Exception):
    """Base class for hostprobe errors."""


class CollectionError(HostprobeError):
    """An entire OS subsystem could not be read."""

    def __init__(self, subsystem: str, reason: str) -> None:
        super().__init__(f"{subsystem}: {reason}")
        self.subsystem = subsystem
        self.reason = reason
