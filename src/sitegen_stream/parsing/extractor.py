"""Delimiter extraction over a growing model output buffer.

Two regions are recognised:

* the reasoning block, ``<thinking>`` ... ``</thinking>`` (the close may
  never arrive);
* the markup artifact, found only after the reasoning block has closed,
  either as a fenced block opened by a ```` ```html ```` line or as a raw
  document starting at ``<!DOCTYPE html``.

Scanning is incremental: a :class:`RegionCursor` remembers where the last
search stopped, and each new search only looks back by the length of the
marker minus one, so a marker split across two chunks is still found
without re-reading the whole buffer.

While a region is still open, any tail of the buffer that could be the
beginning of its closing marker is held back.  Revealed text therefore never
has to be retracted.  Passing ``final=True`` (end of stream) releases it.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, replace
from typing import Protocol

_logger = logging.getLogger(__name__)

REASONING_OPEN = "<thinking>"
REASONING_CLOSE = "</thinking>"
FENCE_CLOSE = "```"


class MarkerKind(enum.Enum):
    OPENING_TAG = "reasoning"
    FENCED_BLOCK = "markup"


@dataclass(frozen=True)
class RegionCursor:
    """Scan position and extent of one region inside the buffer.

    ``start`` is the offset of the first content character, ``end`` the
    offset of the closing marker.  ``scan_from`` is where the next marker
    search begins (lookback already applied).
    """

    start: int | None = None
    end: int | None = None
    revealed: int = 0
    scan_from: int = 0
    pattern: str | None = None

    @property
    def found(self) -> bool:
        return self.start is not None

    @property
    def closed(self) -> bool:
        return self.end is not None

    def text(self, buffer: str) -> str:
        if self.start is None:
            return ""
        return buffer[self.start : self.start + self.revealed]


@dataclass(frozen=True)
class Extraction:
    new_suffix: str
    found: bool
    closed: bool = False


def _held_tail(buffer: str, marker: str, floor: int) -> int:
    """Length of the longest buffer suffix that is a proper prefix of *marker*.

    The suffix never reaches before *floor*.
    """
    limit = min(len(marker) - 1, len(buffer) - floor)
    for n in range(limit, 0, -1):
        if buffer.endswith(marker[:n]):
            return n
    return 0


def _resume_at(buffer: str, marker_len: int, floor: int) -> int:
    return max(floor, len(buffer) - marker_len + 1)


def _reveal(cursor: RegionCursor, visible_end: int) -> RegionCursor:
    assert cursor.start is not None
    return replace(cursor, revealed=max(cursor.revealed, visible_end - cursor.start))


# ---------------------------------------------------------------------------
# Reasoning region
# ---------------------------------------------------------------------------

def scan_reasoning(
    buffer: str, cursor: RegionCursor, final: bool = False,
) -> RegionCursor:
    """Advance the reasoning cursor over *buffer*."""
    if cursor.start is None:
        pos = buffer.find(REASONING_OPEN, cursor.scan_from)
        if pos < 0:
            return replace(
                cursor, scan_from=_resume_at(buffer, len(REASONING_OPEN), 0),
            )
        start = pos + len(REASONING_OPEN)
        cursor = replace(cursor, start=start, scan_from=start)

    if cursor.end is not None:
        return _reveal(cursor, cursor.end)

    pos = buffer.find(REASONING_CLOSE, cursor.scan_from)
    if pos >= 0:
        cursor = replace(cursor, end=pos, scan_from=pos + len(REASONING_CLOSE))
        return _reveal(cursor, pos)

    held = 0 if final else _held_tail(buffer, REASONING_CLOSE, cursor.start)
    cursor = replace(
        cursor,
        scan_from=_resume_at(buffer, len(REASONING_CLOSE), cursor.start),
    )
    return _reveal(cursor, len(buffer) - held)


def reasoning_body_end(cursor: RegionCursor) -> int:
    """Offset just past the reasoning close marker."""
    if cursor.end is None:
        raise ValueError("reasoning block is not closed")
    return cursor.end + len(REASONING_CLOSE)


# ---------------------------------------------------------------------------
# Markup region
# ---------------------------------------------------------------------------

class MarkupDetector(Protocol):
    """Locates and grows the markup region past *floor*."""

    def scan(
        self,
        buffer: str,
        cursor: RegionCursor,
        floor: int,
        final: bool = False,
    ) -> RegionCursor: ...


class HtmlMarkupDetector:
    """Fenced ```` ```html ```` block or raw ``<!DOCTYPE html`` document.

    The opener that starts earliest in the buffer wins and stays fixed for
    the rest of the session.  A fence only counts once its info line has
    ended, since content starts on the following line.
    """

    FENCE_OPEN = re.compile(r"```html", re.IGNORECASE)
    DOCUMENT_OPEN = re.compile(r"<!doctype html", re.IGNORECASE)
    _LOOKBACK = len("<!doctype html") - 1

    def scan(
        self,
        buffer: str,
        cursor: RegionCursor,
        floor: int,
        final: bool = False,
    ) -> RegionCursor:
        if cursor.start is None:
            cursor = self._locate(buffer, cursor, floor, final)
            if cursor.start is None:
                return cursor

        if cursor.pattern == "document":
            return _reveal(cursor, len(buffer))
        if cursor.end is not None:
            return _reveal(cursor, cursor.end)

        pos = buffer.find(FENCE_CLOSE, cursor.scan_from)
        if pos >= 0:
            cursor = replace(cursor, end=pos, scan_from=pos + len(FENCE_CLOSE))
            return _reveal(cursor, pos)

        held = 0 if final else _held_tail(buffer, FENCE_CLOSE, cursor.start)
        cursor = replace(
            cursor, scan_from=_resume_at(buffer, len(FENCE_CLOSE), cursor.start),
        )
        return _reveal(cursor, len(buffer) - held)

    def _locate(
        self,
        buffer: str,
        cursor: RegionCursor,
        floor: int,
        final: bool,
    ) -> RegionCursor:
        begin = max(floor, cursor.scan_from)
        fence = self.FENCE_OPEN.search(buffer, begin)
        document = self.DOCUMENT_OPEN.search(buffer, begin)

        if fence and (document is None or fence.start() < document.start()):
            newline = buffer.find("\n", fence.end())
            if newline >= 0:
                start = newline + 1
            elif final:
                start = fence.end()
            else:
                # info line still arriving; retry from the fence itself
                return replace(cursor, scan_from=fence.start())
            _logger.debug("Markup fence opened at offset %d", fence.start())
            return replace(cursor, start=start, scan_from=start, pattern="fenced")

        if document:
            _logger.debug("Markup document opened at offset %d", document.start())
            return replace(
                cursor,
                start=document.start(),
                scan_from=document.start(),
                pattern="document",
            )

        return replace(
            cursor, scan_from=max(begin, len(buffer) - self._LOOKBACK),
        )


DEFAULT_DETECTOR = HtmlMarkupDetector()


# ---------------------------------------------------------------------------
# Whole-buffer entry points
# ---------------------------------------------------------------------------

def extract(
    buffer: str,
    kind: MarkerKind,
    previously_revealed_length: int = 0,
    *,
    detector: MarkupDetector = DEFAULT_DETECTOR,
    final: bool = False,
) -> Extraction:
    """Return the part of a region revealed beyond *previously_revealed_length*.

    Pure: scans *buffer* from a fresh cursor, so calling it repeatedly with
    the same arguments always returns the same result.  Markup is only
    looked for once the reasoning block has closed.
    """
    reasoning = scan_reasoning(buffer, RegionCursor(), final=final)
    if kind is MarkerKind.OPENING_TAG:
        region = reasoning
    elif not reasoning.closed:
        return Extraction("", False, False)
    else:
        region = detector.scan(
            buffer, RegionCursor(), reasoning_body_end(reasoning), final=final,
        )
    text = region.text(buffer)
    return Extraction(text[previously_revealed_length:], region.found, region.closed)


def rescan_markup(buffer: str, detector: MarkupDetector = DEFAULT_DETECTOR) -> str:
    """End-of-stream fallback search for markup.

    Looks after the reasoning close when there is one, otherwise across the
    whole buffer.
    """
    reasoning = scan_reasoning(buffer, RegionCursor(), final=True)
    floor = reasoning_body_end(reasoning) if reasoning.closed else 0
    return detector.scan(buffer, RegionCursor(), floor, final=True).text(buffer)
