from __future__ import annotations

from typing import Optional, Sequence

from sentiscope.sentiment_types import SentimentResult

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment or upload fewer comments."
QUOTA_MESSAGE = "AI usage limit reached. Please add credits to continue."


class SentimentError(Exception):
    """Base class for analysis failures scoped to a single run or session."""


class _PartialResultsMixin:
    partial_results: list[SentimentResult]

    def attach_partial(self, results: Sequence[SentimentResult]) -> None:
        self.partial_results = list(results)


class RemoteAnalysisError(_PartialResultsMixin, SentimentError):
    """
    Hosted endpoint failure. Aborts the whole multi-batch run.

    `partial_results` holds what completed batches produced before the failure.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.partial_results = []


class RateLimitedError(RemoteAnalysisError):
    """HTTP 429."""

    def __init__(self, message: str = RATE_LIMIT_MESSAGE):
        super().__init__(message, status_code=429)


class QuotaExceededError(RemoteAnalysisError):
    """HTTP 402."""

    def __init__(self, message: str = QUOTA_MESSAGE):
        super().__init__(message, status_code=402)


class UpstreamError(RemoteAnalysisError):
    """Any other non-success status, transport failure or malformed body."""


class LocalAnalysisError(_PartialResultsMixin, SentimentError):
    """The in-process classifier failed for an item; the run is aborted."""

    def __init__(self, message: str, index: int):
        super().__init__(message)
        self.index = index
        self.partial_results = []


class CameraPermissionError(SentimentError):
    """The frame source could not be opened (device missing or access denied)."""
