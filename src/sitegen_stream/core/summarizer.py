"""Short human-readable note describing a finished generation."""

from __future__ import annotations

import logging
from typing import Protocol

from sitegen_stream.errors import UpstreamError
from sitegen_stream.llm.client import AsyncLLMClient
from sitegen_stream.llm.prompts import build_note_messages

_logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    """Produces the note sent with ``Completed``.

    Receives the normalized page as well as the reasoning transcript.
    """

    async def summarize(
        self, instruction: str, reasoning: str, final_markup: str, mode: str,
    ) -> str: ...


class NoteSummarizer:
    """Asks a small model for a designer's note; falls back to a fixed one.

    Only the reasoning goes into the prompt; the page itself is not sent.
    """

    def __init__(self, client: AsyncLLMClient, model: str, default_note: str) -> None:
        self._client = client
        self._model = model
        self._default_note = default_note

    async def summarize(
        self, instruction: str, reasoning: str, final_markup: str, mode: str,
    ) -> str:
        messages = build_note_messages(instruction, reasoning, mode)
        try:
            note = await self._client.chat(messages, self._model)
        except UpstreamError as e:
            _logger.warning("Design note unavailable, using default: %s", e.message)
            return self._default_note
        return note.strip() or self._default_note


class StaticSummarizer:
    """Always returns the same note."""

    def __init__(self, note: str) -> None:
        self._note = note

    async def summarize(
        self, instruction: str, reasoning: str, final_markup: str, mode: str,
    ) -> str:
        return self._note
