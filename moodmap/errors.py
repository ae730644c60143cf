"""Error taxonomy for place discovery."""
from __future__ import annotations

from typing import Optional


class MoodMapError(RuntimeError):
    pass


class LocationUnavailable(MoodMapError):
    """The origin coordinate could not be determined (denied, unsupported or invalid)."""


class TransportFailure(MoodMapError):
    """Network-level failure that survived every retry."""


class ProviderError(MoodMapError):
    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        super().__init__(message or f"Provider returned HTTP {status_code}")


class ParseFailure(MoodMapError):
    """The provider response was not JSON or had an unexpected shape."""


class SearchCancelled(MoodMapError):
    """A newer search superseded this one before it finished."""


class SearchFailure(MoodMapError):
    """Unified search error surfaced to callers.

    Distinct from an empty result: an empty list means the search worked and
    found nothing.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.cause = cause
        self.status_code = status_code
        if status_code is None and isinstance(cause, ProviderError):
            self.status_code = cause.status_code
        super().__init__(message)
