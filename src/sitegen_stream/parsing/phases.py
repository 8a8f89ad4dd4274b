"""Phase state machine for one generation session.

Phases only move forward::

    idle -> thinking -> analyzing -> designing -> generating -> completed
                                                             \\-> failed

Intermediate phases may be skipped (a model that never opens a reasoning
block goes straight from ``thinking`` to ``completed``), but none is ever
entered twice.  ``failed`` is reachable from any non-terminal phase.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from sitegen_stream.types import Phase, PhaseEntered

if TYPE_CHECKING:
    from sitegen_stream.parsing.state import ParseState

_logger = logging.getLogger(__name__)

# Phases announced with a PhaseEntered frame; terminal phases are announced
# by the terminal frame itself.
ANNOUNCED_PHASES = (Phase.THINKING, Phase.ANALYZING, Phase.DESIGNING, Phase.GENERATING)


def can_enter(current: Phase, fired: frozenset[Phase], target: Phase) -> bool:
    """Whether *target* is a legal next phase."""
    if current.is_terminal or target in fired:
        return False
    if target is Phase.IDLE:
        return False
    return target.rank > current.rank


def enter(state: ParseState, target: Phase) -> tuple[ParseState, PhaseEntered | None]:
    """Move *state* into *target* if allowed.

    Returns the new state and the frame announcing the entry, or the
    unchanged state and ``None`` when the transition is a repeat or would
    go backwards.
    """
    if not can_enter(state.phase, state.phase_fired, target):
        _logger.debug("Ignoring transition %s -> %s", state.phase.value, target.value)
        return state, None
    new_state = replace(
        state, phase=target, phase_fired=state.phase_fired | {target},
    )
    frame = PhaseEntered(target) if target in ANNOUNCED_PHASES else None
    return new_state, frame
