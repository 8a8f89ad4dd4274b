"""Line-delimited wire format for stream frames.

Each frame is one SSE-style record::

    data: {"type": "html_delta", "content": "<section>"}\\n\\n

``type`` is one of ``phase``, ``thinking``, ``html_delta``, ``complete``
and ``error``.  The last two are terminal.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sitegen_stream.errors import MalformedFrame
from sitegen_stream.types import (
    Completed,
    Failed,
    MarkupDelta,
    Phase,
    PhaseEntered,
    ReasoningDelta,
    StreamFrame,
)

_logger = logging.getLogger(__name__)

MEDIA_TYPE = "text/event-stream"
_DATA_PREFIX = "data:"
_DONE = "[DONE]"


def frame_to_dict(frame: StreamFrame) -> dict[str, Any]:
    if isinstance(frame, PhaseEntered):
        return {"type": "phase", "phase": frame.phase.value}
    if isinstance(frame, ReasoningDelta):
        return {"type": "thinking", "content": frame.text}
    if isinstance(frame, MarkupDelta):
        return {"type": "html_delta", "content": frame.text}
    if isinstance(frame, Completed):
        return {"type": "complete", "html": frame.final_markup, "message": frame.note}
    if isinstance(frame, Failed):
        return {"type": "error", "message": frame.reason, "code": frame.code}
    raise TypeError(f"Not a stream frame: {frame!r}")


def frame_from_dict(data: Any) -> StreamFrame:
    """Build a frame from a decoded JSON payload.

    Raises :class:`MalformedFrame` on unknown types or missing fields.
    """
    if not isinstance(data, dict):
        raise MalformedFrame("payload is not an object")
    kind = data.get("type")
    try:
        if kind == "phase":
            return PhaseEntered(Phase(data["phase"]))
        if kind == "thinking":
            return ReasoningDelta(_text(data, "content"))
        if kind == "html_delta":
            return MarkupDelta(_text(data, "content"))
        if kind == "complete":
            return Completed(_text(data, "html"), _text(data, "message", ""))
        if kind == "error":
            return Failed(
                _text(data, "message", "Generation failed"),
                _text(data, "code", "internal"),
            )
    except (KeyError, ValueError) as e:
        raise MalformedFrame(f"bad {kind!r} frame: {e}") from e
    raise MalformedFrame(f"unknown frame type {kind!r}")


def _text(data: dict[str, Any], key: str, default: str | None = None) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise KeyError(key)
    return value


def encode_frame(frame: StreamFrame) -> str:
    payload = json.dumps(frame_to_dict(frame), ensure_ascii=False)
    return f"{_DATA_PREFIX} {payload}\n\n"


def decode_record(line: str) -> StreamFrame | None:
    """Decode one line.  Returns ``None`` for lines that carry no frame."""
    line = line.strip()
    if not line.startswith(_DATA_PREFIX):
        return None
    body = line[len(_DATA_PREFIX):].strip()
    if not body or body == _DONE:
        return None
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedFrame(f"invalid JSON: {e}") from e
    return frame_from_dict(data)


class FrameDecoder:
    """Reassembles frames from arbitrarily split text chunks.

    Bytes are buffered until a full line is available.  Records that fail
    to decode are skipped and counted in :attr:`skipped`.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.skipped = 0

    def feed(self, text: str) -> list[StreamFrame]:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def close(self) -> list[StreamFrame]:
        """Decode whatever is left after the stream ended."""
        rest, self._buffer = self._buffer, ""
        return self._decode_lines([rest])

    def _decode_lines(self, lines: list[str]) -> list[StreamFrame]:
        frames: list[StreamFrame] = []
        for line in lines:
            try:
                frame = decode_record(line)
            except MalformedFrame as e:
                self.skipped += 1
                _logger.warning(
                    "Skipping malformed frame (%d skipped so far): %s",
                    self.skipped, e.message,
                )
                continue
            if frame is not None:
                frames.append(frame)
        return frames
