"""Client-side stream consumer and its collaborators."""

from sitegen_stream.client.collaborators import (
    ArtifactStore,
    CreditLedger,
    FileArtifactStore,
    FixedCreditLedger,
    GenerationResult,
    InMemoryArtifactStore,
    InMemoryVersionHistory,
    InsufficientCredits,
    VersionHistory,
)
from sitegen_stream.client.consumer import GenerationOutcome, StreamConsumer

__all__ = [
    "ArtifactStore",
    "CreditLedger",
    "FileArtifactStore",
    "FixedCreditLedger",
    "GenerationOutcome",
    "GenerationResult",
    "InMemoryArtifactStore",
    "InMemoryVersionHistory",
    "InsufficientCredits",
    "StreamConsumer",
    "VersionHistory",
]
