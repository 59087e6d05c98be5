"""Exception hierarchy shared by the sync engine."""

from __future__ import annotations


class AggregatorError(Exception):
    """Base class for engine failures that are fatal to a single source."""


class FetchError(AggregatorError):
    """Transport failure, timeout or non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(AggregatorError):
    """Payload could not be decoded at all."""


class StoreError(AggregatorError):
    """Corpus could not be read from or written to the store."""


__all__ = ["AggregatorError", "FetchError", "ParseError", "StoreError"]
