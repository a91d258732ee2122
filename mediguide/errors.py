"""
Exception hierarchy shared by services and the HTTP layer.

Only InvalidInputError and NotFoundError reach API clients. Remote failures
are absorbed where they happen and replaced by static fallback payloads.
"""


class MediGuideError(Exception):
    """Base class for all application errors."""


class InvalidInputError(MediGuideError):
    """Raised when a required field is missing or malformed (HTTP 400)."""

    def __init__(self, message: str, error: str = "Invalid request"):
        super().__init__(message)
        self.error = error
        self.message = message


class NotFoundError(MediGuideError):
    """Raised when a referenced session or resource does not exist (HTTP 404)."""

    def __init__(self, message: str, error: str = "Not found"):
        super().__init__(message)
        self.error = error
        self.message = message


class RemoteUnavailableError(MediGuideError):
    """Raised when a remote service keeps failing after all attempts."""


class RemoteRateLimitedError(RemoteUnavailableError):
    """Raised when the remote service is still throttling after the last attempt."""


class ParseError(MediGuideError):
    """Raised when remote content does not match the expected structured shape."""
