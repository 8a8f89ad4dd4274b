"""Tests for shared types and the error taxonomy."""

import dataclasses

import pytest

from sitegen_stream.errors import (
    ConfigError,
    EmptyExtraction,
    SitegenError,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from sitegen_stream.types import (
    IDLE_VIEW,
    TERMINAL_FRAMES,
    ClientViewState,
    Completed,
    ConversationTurn,
    Failed,
    GenerationRequest,
    Phase,
    ReasoningDelta,
)


class TestGenerationRequest:
    def test_to_dict(self):
        request = GenerationRequest(
            "coach",
            history=(ConversationTurn("user", "hello"),),
            prior_artifact="<p>",
        )
        assert request.to_dict() == {
            "instruction": "coach",
            "history": [{"speaker": "user", "text": "hello"}],
            "prior_artifact": "<p>",
            "image": None,
        }

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            GenerationRequest("x").instruction = "y"  # type: ignore[misc]


class TestFrames:
    def test_terminal_frames(self):
        assert isinstance(Completed("", ""), TERMINAL_FRAMES)
        assert isinstance(Failed("x"), TERMINAL_FRAMES)
        assert not isinstance(ReasoningDelta("x"), TERMINAL_FRAMES)

    def test_failed_default_code(self):
        assert Failed("x").code == "internal"


class TestClientViewState:
    def test_idle_view(self):
        assert IDLE_VIEW == ClientViewState()
        assert not IDLE_VIEW.active
        assert IDLE_VIEW.phase is Phase.IDLE
        assert IDLE_VIEW.error is None


class TestErrors:
    def test_message_defaults_to_docstring(self):
        assert EmptyExtraction().message == "The model finished without producing any markup."

    def test_explicit_message(self):
        assert ConfigError("bad port").message == "bad port"
        assert str(ConfigError("bad port")) == "bad port"

    def test_codes(self):
        assert SitegenError.code == "internal"
        assert UpstreamUnavailable.code == "upstream_unavailable"
        assert UpstreamRateLimited.code == "upstream_rate_limited"

    def test_upstream_hierarchy(self):
        err = UpstreamRateLimited(status_code=429)
        assert isinstance(err, UpstreamError)
        assert isinstance(err, SitegenError)
        assert err.status_code == 429
