"""Custom exceptions for Meme Day fetching and parsing."""

from typing import List

from .models import StrategyFailure


class MemeDayError(Exception):
    """Base class for all Meme Day errors."""
    pass


class TransportFailure(MemeDayError):
    """Raised when a request returns a non-success status, times out or fails on the network."""
    pass


class AllStrategiesExhausted(TransportFailure):
    """Raised when every transport strategy failed for a target URL."""

    def __init__(self, target_url: str, failures: List[StrategyFailure]):
        self.target_url = target_url
        self.failures = list(failures)
        details = "; ".join(f"{f.strategy}: {f.reason}" for f in self.failures) or "no strategies configured"
        super().__init__(f"All strategies failed for {target_url} ({details})")


class ParseFailure(MemeDayError):
    """Raised when a feed or page payload cannot be parsed."""
    pass


class ValidationFailure(MemeDayError):
    """Raised when parsed content lacks a title, an absolute link or a usable body."""
    pass


class AllSourcesExhausted(MemeDayError):
    """Raised when no feed source produced a usable item."""
    pass
