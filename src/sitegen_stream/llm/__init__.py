"""Model provider client and prompt building."""

from sitegen_stream.llm.client import AsyncLLMClient
from sitegen_stream.llm.prompts import build_messages, build_note_messages, detect_mode

__all__ = [
    "AsyncLLMClient",
    "build_messages",
    "build_note_messages",
    "detect_mode",
]
