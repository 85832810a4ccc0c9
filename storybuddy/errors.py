"""
Exception types for Story Buddy.

Only persistence write failures are meant to reach a caller as exceptions;
the rest are raised inside a component and converted into user-facing state
(a disabled feature, a fallback story, a failed recognition result) at the
component boundary.
"""

from typing import Optional


class StoryBuddyError(Exception):
    """Base exception for Story Buddy errors."""
    pass


class UnsupportedCapability(StoryBuddyError):
    """Raised when the platform has no speech input or speech output."""

    def __init__(self, capability: str):
        self.capability = capability
        super().__init__(f"{capability} is not supported on this platform")


class CaptureError(StoryBuddyError):
    """
    Raised by a speech input engine when one capture attempt fails.

    ``code`` is one of the engine error codes ("no-speech", "audio-capture",
    "not-allowed", "network", "aborted") or any other engine-specific string.
    """

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message or code)


class PlaybackInterrupted(StoryBuddyError):
    """Raised by a speech output engine when an utterance is cancelled mid-flight."""
    pass


class RemoteServiceFailure(StoryBuddyError):
    """AI generation/translation failed or returned malformed data."""
    pass


class PersistenceFailure(StoryBuddyError):
    """A write against the hosted database did not happen."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{operation} failed{detail}")
