"""Per-request parse state and the fold over incoming chunks.

``ParseState`` is immutable: every step returns a new value, so nothing
about one session can leak into another even if a coordinator instance is
shared.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from sitegen_stream.parsing.extractor import (
    DEFAULT_DETECTOR,
    MarkupDetector,
    RegionCursor,
    reasoning_body_end,
    scan_reasoning,
)
from sitegen_stream.parsing.phases import enter
from sitegen_stream.types import (
    MarkupDelta,
    Phase,
    ReasoningDelta,
    StreamFrame,
)


@dataclass(frozen=True)
class ParseState:
    """Everything known about one in-flight generation."""

    raw_buffer: str = ""
    phase: Phase = Phase.IDLE
    phase_fired: frozenset[Phase] = field(default_factory=frozenset)
    reasoning: RegionCursor = field(default_factory=RegionCursor)
    markup: RegionCursor = field(default_factory=RegionCursor)

    @property
    def reasoning_revealed(self) -> str:
        return self.reasoning.text(self.raw_buffer)

    @property
    def markup_revealed(self) -> str:
        return self.markup.text(self.raw_buffer)

    @property
    def reasoning_closed(self) -> bool:
        return self.reasoning.closed


def _new_text(buffer: str, old: RegionCursor, new: RegionCursor) -> str:
    if new.start is None or new.revealed <= old.revealed:
        return ""
    return buffer[new.start + old.revealed : new.start + new.revealed]


def _advance(
    state: ParseState, detector: MarkupDetector, final: bool,
) -> tuple[ParseState, list[StreamFrame]]:
    frames: list[StreamFrame] = []
    buffer = state.raw_buffer

    reasoning = scan_reasoning(buffer, state.reasoning, final=final)
    if reasoning.found:
        state, frame = enter(state, Phase.ANALYZING)
        if frame:
            frames.append(frame)
    text = _new_text(buffer, state.reasoning, reasoning)
    state = replace(state, reasoning=reasoning)
    if text:
        frames.append(ReasoningDelta(text))

    # Markup is never looked for inside the reasoning block.
    if not reasoning.closed:
        return state, frames

    state, frame = enter(state, Phase.DESIGNING)
    if frame:
        frames.append(frame)

    markup = detector.scan(
        buffer, state.markup, reasoning_body_end(reasoning), final=final,
    )
    if markup.found:
        state, frame = enter(state, Phase.GENERATING)
        if frame:
            frames.append(frame)
    text = _new_text(buffer, state.markup, markup)
    state = replace(state, markup=markup)
    if text:
        frames.append(MarkupDelta(text))
    return state, frames


def begin() -> tuple[ParseState, list[StreamFrame]]:
    """Fresh state, already in ``thinking``."""
    state, frame = enter(ParseState(), Phase.THINKING)
    return state, [frame] if frame else []


def fold(
    state: ParseState,
    chunk: str,
    detector: MarkupDetector = DEFAULT_DETECTOR,
) -> tuple[ParseState, list[StreamFrame]]:
    """Append *chunk* and return the new state plus the frames it unlocked."""
    if not chunk:
        return state, []
    state = replace(state, raw_buffer=state.raw_buffer + chunk)
    return _advance(state, detector, final=False)


def finish(
    state: ParseState,
    detector: MarkupDetector = DEFAULT_DETECTOR,
) -> tuple[ParseState, list[StreamFrame]]:
    """Release text held back while waiting for possible closing markers."""
    return _advance(state, detector, final=True)
