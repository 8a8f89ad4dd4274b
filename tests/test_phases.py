"""Tests for the phase state machine."""

from __future__ import annotations

from sitegen_stream.parsing.phases import can_enter, enter
from sitegen_stream.parsing.state import ParseState
from sitegen_stream.types import Phase, PhaseEntered


def walk(*targets: Phase):
    state = ParseState()
    frames = []
    for target in targets:
        state, frame = enter(state, target)
        frames.append(frame)
    return state, frames


class TestEnter:
    def test_forward_path_announces_each_phase(self):
        state, frames = walk(
            Phase.THINKING, Phase.ANALYZING, Phase.DESIGNING, Phase.GENERATING,
        )
        assert frames == [
            PhaseEntered(Phase.THINKING),
            PhaseEntered(Phase.ANALYZING),
            PhaseEntered(Phase.DESIGNING),
            PhaseEntered(Phase.GENERATING),
        ]
        assert state.phase is Phase.GENERATING

    def test_repeat_is_ignored(self):
        state, frames = walk(Phase.THINKING, Phase.THINKING)
        assert frames == [PhaseEntered(Phase.THINKING), None]
        assert state.phase_fired == frozenset({Phase.THINKING})

    def test_backwards_is_ignored(self):
        state, frames = walk(Phase.THINKING, Phase.DESIGNING, Phase.ANALYZING)
        assert frames[-1] is None
        assert state.phase is Phase.DESIGNING

    def test_skipping_is_allowed(self):
        state, frames = walk(Phase.THINKING, Phase.GENERATING)
        assert frames == [PhaseEntered(Phase.THINKING), PhaseEntered(Phase.GENERATING)]

    def test_terminal_phases_are_not_announced(self):
        state, frames = walk(Phase.THINKING, Phase.COMPLETED)
        assert frames == [PhaseEntered(Phase.THINKING), None]
        assert state.phase is Phase.COMPLETED

    def test_nothing_after_terminal(self):
        state, _ = walk(Phase.THINKING, Phase.FAILED)
        unchanged, frame = enter(state, Phase.COMPLETED)
        assert frame is None
        assert unchanged is state


class TestCanEnter:
    def test_failed_reachable_from_any_live_phase(self):
        for phase in (Phase.IDLE, Phase.THINKING, Phase.ANALYZING,
                      Phase.DESIGNING, Phase.GENERATING):
            assert can_enter(phase, frozenset(), Phase.FAILED)

    def test_idle_is_never_a_target(self):
        assert not can_enter(Phase.IDLE, frozenset(), Phase.IDLE)

    def test_fired_phase_is_rejected(self):
        assert not can_enter(Phase.IDLE, frozenset({Phase.ANALYZING}), Phase.ANALYZING)


class TestPhaseOrdering:
    def test_ranks_increase(self):
        ordered = [Phase.IDLE, Phase.THINKING, Phase.ANALYZING,
                   Phase.DESIGNING, Phase.GENERATING, Phase.COMPLETED]
        ranks = [p.rank for p in ordered]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == len(ranks)

    def test_terminal(self):
        assert Phase.COMPLETED.is_terminal
        assert Phase.FAILED.is_terminal
        assert not Phase.GENERATING.is_terminal
