"""Server-side generation pipeline."""

from sitegen_stream.core.coordinator import StreamCoordinator
from sitegen_stream.core.summarizer import NoteSummarizer, StaticSummarizer, Summarizer

__all__ = [
    "NoteSummarizer",
    "StaticSummarizer",
    "StreamCoordinator",
    "Summarizer",
]
