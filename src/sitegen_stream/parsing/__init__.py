"""Incremental extraction of reasoning and markup from model output."""

from sitegen_stream.parsing.extractor import (
    DEFAULT_DETECTOR,
    Extraction,
    HtmlMarkupDetector,
    MarkerKind,
    MarkupDetector,
    RegionCursor,
    extract,
    rescan_markup,
)
from sitegen_stream.parsing.normalize import normalize, strip_fences
from sitegen_stream.parsing.state import ParseState, begin, finish, fold

__all__ = [
    "DEFAULT_DETECTOR",
    "Extraction",
    "HtmlMarkupDetector",
    "MarkerKind",
    "MarkupDetector",
    "ParseState",
    "RegionCursor",
    "begin",
    "extract",
    "finish",
    "fold",
    "normalize",
    "rescan_markup",
    "strip_fences",
]
