"""Shared data types for sitegen-stream."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Union


# ---------------------------------------------------------------------------
# Generation phases
# ---------------------------------------------------------------------------

class Phase(enum.Enum):
    """Ordered phases of one generation session."""

    IDLE = "idle"
    THINKING = "thinking"
    ANALYZING = "analyzing"
    DESIGNING = "designing"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        # COMPLETED and FAILED share the terminal rank
        return _PHASE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (Phase.COMPLETED, Phase.FAILED)


_PHASE_RANK = {
    Phase.IDLE: 0,
    Phase.THINKING: 1,
    Phase.ANALYZING: 2,
    Phase.DESIGNING: 3,
    Phase.GENERATING: 4,
    Phase.COMPLETED: 5,
    Phase.FAILED: 5,
}


# ---------------------------------------------------------------------------
# Request types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversationTurn:
    """One prior turn of the conversation."""

    speaker: str  # "user" | "assistant"
    text: str


@dataclass(frozen=True)
class GenerationRequest:
    """Input of one generation session."""

    instruction: str
    history: tuple[ConversationTurn, ...] = ()
    prior_artifact: str | None = None
    image: str | None = None  # data URL or remote URL

    def to_dict(self) -> dict[str, Any]:
        return {
            "instruction": self.instruction,
            "history": [
                {"speaker": t.speaker, "text": t.text} for t in self.history
            ],
            "prior_artifact": self.prior_artifact,
            "image": self.image,
        }


# ---------------------------------------------------------------------------
# Stream frames
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PhaseEntered:
    phase: Phase


@dataclass(frozen=True)
class ReasoningDelta:
    text: str


@dataclass(frozen=True)
class MarkupDelta:
    text: str


@dataclass(frozen=True)
class Completed:
    """Terminal frame carrying the normalized artifact."""

    final_markup: str
    note: str


@dataclass(frozen=True)
class Failed:
    """Terminal frame carrying a user-facing reason."""

    reason: str
    code: str = "internal"


StreamFrame = Union[PhaseEntered, ReasoningDelta, MarkupDelta, Completed, Failed]

TERMINAL_FRAMES = (Completed, Failed)


# ---------------------------------------------------------------------------
# Client-side view
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClientViewState:
    """What the UI renders for the current generation."""

    active: bool = False
    phase: Phase = Phase.IDLE
    reasoning_so_far: str = ""
    markup_so_far: str = ""
    error: str | None = None


IDLE_VIEW = ClientViewState()


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Events published by the stream consumer."""

    GENERATION_STARTED = "generation.started"
    GENERATION_PHASE = "generation.phase"
    GENERATION_REASONING = "generation.reasoning"
    GENERATION_MARKUP = "generation.markup"
    GENERATION_COMPLETED = "generation.completed"
    GENERATION_FAILED = "generation.failed"
    GENERATION_CANCELLED = "generation.cancelled"


@dataclass
class GenerationEvent:
    """Event emitted by the consumer via the EventBus."""

    type: EventType
    view: ClientViewState = IDLE_VIEW
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
