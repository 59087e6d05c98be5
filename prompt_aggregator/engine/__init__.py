"""Engine components orchestrating budget → fetch → parse → classify → dedup."""

from .classifier import Classifier
from .dedup import CorpusIndex, Deduplicator, fingerprint
from .fetcher import FetchRequest, FetchResponse, Fetcher
from .parser import FormatParser, ParseHint, PromptFormat
from .rate_limiter import RateLimiter, RateLimitState
from .records import Difficulty, ExternalPromptRecord, SyncMetrics, SyncResult
from .worker import RATE_LIMIT_NOTE, SourceSyncWorker

__all__ = [
    "Classifier",
    "CorpusIndex",
    "Deduplicator",
    "Difficulty",
    "ExternalPromptRecord",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "FormatParser",
    "ParseHint",
    "PromptFormat",
    "RATE_LIMIT_NOTE",
    "RateLimitState",
    "RateLimiter",
    "SourceSyncWorker",
    "SyncMetrics",
    "SyncResult",
    "fingerprint",
]
