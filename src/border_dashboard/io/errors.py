from __future__ import annotations


class ArtifactFetchError(RuntimeError):
    """Raised when a static artifact cannot be read from its source."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"failed to fetch {location}: {reason}")
        self.location = location
        self.reason = reason


class UnsupportedEventTypeError(ValueError):
    def __init__(self, event_type_code: int) -> None:
        super().__init__(f"unsupported event type code: {event_type_code}")
        self.event_type_code = event_type_code
