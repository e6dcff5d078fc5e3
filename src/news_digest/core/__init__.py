"""Core domain layer."""

from news_digest.core.change_detector import ChangeDetector
from news_digest.core.entities import (
    EPOCH,
    CandidateItem,
    CompletionRequest,
    CompletionResult,
    Digest,
    DigestDraft,
    FetchResult,
    Importance,
    IngestionReport,
    NewContentResult,
    PipelineResult,
    PublishResult,
    RollingPipelineResult,
    Source,
    StoredItem,
    compute_fingerprint,
    to_stored_item,
)
from news_digest.core.errors import (
    ConfigurationError,
    GenerationError,
    NewsDigestError,
    StorageError,
)
from news_digest.core.interfaces import (
    ExtractionStrategy,
    Publisher,
    Repository,
    TextGenerator,
)

__all__ = [
    "EPOCH",
    "Source",
    "CandidateItem",
    "StoredItem",
    "Digest",
    "DigestDraft",
    "Importance",
    "FetchResult",
    "NewContentResult",
    "IngestionReport",
    "CompletionRequest",
    "CompletionResult",
    "PublishResult",
    "PipelineResult",
    "RollingPipelineResult",
    "compute_fingerprint",
    "to_stored_item",
    "ExtractionStrategy",
    "Repository",
    "TextGenerator",
    "Publisher",
    "ChangeDetector",
    "NewsDigestError",
    "ConfigurationError",
    "StorageError",
    "GenerationError",
]
