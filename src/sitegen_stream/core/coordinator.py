"""Server-side coordinator: one upstream call in, one frame stream out."""

from __future__ import annotations

import logging
import time
from typing import AsyncGenerator

from sitegen_stream.config import GenerationSpec, ProviderSpec
from sitegen_stream.core.summarizer import NoteSummarizer, Summarizer
from sitegen_stream.errors import EmptyExtraction, ReasoningUnclosed, SitegenError
from sitegen_stream.llm.client import AsyncLLMClient
from sitegen_stream.llm.prompts import build_messages
from sitegen_stream.parsing.extractor import (
    DEFAULT_DETECTOR,
    MarkupDetector,
    rescan_markup,
)
from sitegen_stream.parsing.normalize import normalize, strip_fences
from sitegen_stream.parsing.phases import enter
from sitegen_stream.parsing.state import ParseState, begin, finish, fold
from sitegen_stream.types import (
    Completed,
    Failed,
    GenerationRequest,
    Phase,
    StreamFrame,
)

_logger = logging.getLogger(__name__)


class StreamCoordinator:
    """Runs generation sessions.

    Holds no per-session state: each :meth:`run` threads its own
    :class:`ParseState`, so one coordinator can serve concurrent requests.
    """

    def __init__(
        self,
        client: AsyncLLMClient,
        provider: ProviderSpec,
        generation: GenerationSpec,
        summarizer: Summarizer | None = None,
        detector: MarkupDetector = DEFAULT_DETECTOR,
    ) -> None:
        self._client = client
        self._provider = provider
        self._spec = generation
        self._detector = detector
        self._summarizer = summarizer or NoteSummarizer(
            client, provider.note_model, generation.default_note,
        )

    async def run(self, request: GenerationRequest) -> AsyncGenerator[StreamFrame, None]:
        """Yield the frames of one session, ending with exactly one terminal frame."""
        messages, mode = build_messages(request, self._spec)
        state = ParseState()
        start = time.monotonic()
        _logger.info("Generation started (mode=%s)", mode)

        try:
            async with self._client.open_stream(messages, self._provider.model) as chunks:
                state, frames = begin()
                for frame in frames:
                    yield frame
                async for chunk in chunks:
                    state, frames = fold(state, chunk, self._detector)
                    for frame in frames:
                        yield frame

            state, frames = finish(state, self._detector)
            for frame in frames:
                yield frame

            final_markup = self.finalize(state)
            note = await self._summarizer.summarize(
                request.instruction, state.reasoning_revealed, final_markup, mode,
            )
        except SitegenError as e:
            _logger.warning("Generation failed [%s]: %s", e.code, e.message)
            yield Failed(e.message, e.code)
            return
        except Exception as e:
            _logger.exception("Generation failed unexpectedly")
            yield Failed(str(e) or "Unexpected error during generation", "internal")
            return

        state, _ = enter(state, Phase.COMPLETED)
        _logger.info(
            "Generation completed in %.0f ms (%d reasoning chars, %d markup chars)",
            (time.monotonic() - start) * 1000,
            len(state.reasoning_revealed),
            len(final_markup),
        )
        yield Completed(final_markup, note)

    def finalize(self, state: ParseState) -> str:
        """Turn the end-of-stream state into the normalized artifact.

        Raises :class:`ReasoningUnclosed` or :class:`EmptyExtraction`.
        A stream that never opened a reasoning block is not unclosed.
        """
        unclosed = state.reasoning.found and not state.reasoning_closed
        if unclosed and self._spec.unclosed_reasoning == "fail":
            raise ReasoningUnclosed()

        markup = strip_fences(state.markup_revealed)
        if len(markup) < self._spec.min_markup_length:
            fallback = strip_fences(rescan_markup(state.raw_buffer, self._detector))
            if len(fallback) > len(markup):
                _logger.info(
                    "Using full-buffer rescan (%d chars instead of %d)",
                    len(fallback), len(markup),
                )
                markup = fallback

        if not markup:
            raise EmptyExtraction()
        return normalize(markup)
