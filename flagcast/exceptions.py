"""
Custom exceptions for Flagcast.

Provides explicit error types instead of silent failures.
"""


class FlagcastError(Exception):
    """Base exception for all Flagcast errors."""

    pass


class InvalidInput(FlagcastError):
    """Raised when a notification or flag request fails validation."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidKey(InvalidInput):
    """Raised when a flag key does not match the identifier pattern."""

    def __init__(self, key):
        self.key = key
        super().__init__("key", "Must match [A-Za-z0-9_.-]+")


class StoreUnavailable(FlagcastError):
    """Raised when the flag store cannot be reached."""

    def __init__(self, operation: str = "flag store operation", cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Flag store not available for {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class BusUnavailable(FlagcastError):
    """Raised when the coordination bus cannot publish or deliver on a topic."""

    def __init__(self, topic: str, cause: Exception | None = None):
        self.topic = topic
        self.cause = cause
        message = f"Coordination bus unavailable for '{topic}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MalformedBusPayload(FlagcastError):
    """Raised when a bus payload cannot be decoded into an event."""

    def __init__(self, topic: str, reason: str):
        self.topic = topic
        self.reason = reason
        super().__init__(f"Malformed payload on '{topic}': {reason}")


class ConnectionLimitReached(FlagcastError):
    """Raised when a connection is registered beyond max_connections."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Connection limit reached ({limit})")
