"""Exceptions and error categorisation for the LiuTube client."""

from typing import Dict, Optional


class LiuTubeError(Exception):
    """Base class for errors raised by the client."""


class NotInitializedError(LiuTubeError):
    """Raised when the YouTube client could not be created."""

    def __init__(self, message: str = "YouTube not initialized") -> None:
        super().__init__(message)


class NoFormatError(LiuTubeError):
    """Raised when no usable format matches a request."""


class HttpStatusError(LiuTubeError):
    """Raised when a media fetch answers with an unexpected status."""

    def __init__(self, status: int, reason: str = "") -> None:
        self.status = status
        self.reason = reason
        super().__init__(f"HTTP {status}: {reason}".rstrip())


class DownloadTimeoutError(LiuTubeError):
    """Raised when the raw HTTP fetch exceeds its request timeout."""

    def __init__(self, message: str = "Download timeout") -> None:
        super().__init__(message)


# Friendly texts shown instead of raw playback errors
PLAYBACK_HINTS: Dict[str, str] = {
    "age_restricted": (
        "This video is age-restricted and cannot be played directly. Try downloading instead."
    ),
    "region_restricted": (
        "This video cannot be played (possibly region-restricted or music). Try downloading instead."
    ),
    "playback_restricted": (
        "This video has playback restrictions. You can still download it."
    ),
    "unknown": (
        "Unable to play this video. It may be restricted or unavailable. Try downloading instead."
    ),
}


def categorize_error(error_message: Optional[str]) -> str:
    """Return the category of an extraction or playback error message."""
    lowered = (error_message or "").lower()

    # Order matters - more specific first
    if any(x in lowered for x in ["sign in to confirm your age", "age-restricted", "age restricted", "inappropriate for some users"]):
        return "age_restricted"
    if any(x in lowered for x in ["in your country", "geo-restricted", "region", "copyright", "music"]):
        return "region_restricted"
    if any(x in lowered for x in ["playability", "unplayable", "playback", "embedding", "login required", "members only", "private"]):
        return "playback_restricted"
    return "unknown"


def describe_playback_error(error_message: Optional[str]) -> str:
    """Map an error message to the hint shown in place of the player."""
    return PLAYBACK_HINTS[categorize_error(error_message)]
