"""Tests for delimiter extraction over a growing buffer."""

from __future__ import annotations

from sitegen_stream.parsing.extractor import (
    Extraction,
    HtmlMarkupDetector,
    MarkerKind,
    RegionCursor,
    extract,
    reasoning_body_end,
    rescan_markup,
    scan_reasoning,
)

import pytest

REASONING = MarkerKind.OPENING_TAG
MARKUP = MarkerKind.FENCED_BLOCK


class TestReasoningRegion:
    def test_closed_block(self):
        result = extract("<thinking>abc</thinking>tail", REASONING)
        assert result == Extraction("abc", found=True, closed=True)

    def test_previously_revealed_is_skipped(self):
        result = extract("<thinking>abcdef</thinking>", REASONING, 4)
        assert result.new_suffix == "ef"

    def test_open_block_reveals_everything_so_far(self):
        result = extract("<thinking>still going", REASONING)
        assert result == Extraction("still going", found=True, closed=False)

    def test_not_started(self):
        assert extract("hello there", REASONING) == Extraction("", False, False)

    def test_partial_close_marker_is_held_back(self):
        result = extract("<thinking>abc</thi", REASONING)
        assert result.new_suffix == "abc"
        assert not result.closed

    def test_final_releases_held_tail(self):
        result = extract("<thinking>abc</thi", REASONING, final=True)
        assert result.new_suffix == "abc</thi"

    def test_lone_angle_bracket_is_held(self):
        assert extract("<thinking>a <", REASONING).new_suffix == "a "

    def test_idempotent(self):
        buffer = "<thinking>some reasoning</thin"
        assert extract(buffer, REASONING, 3) == extract(buffer, REASONING, 3)

    def test_previously_revealed_past_end_is_empty(self):
        assert extract("<thinking>abc", REASONING, 10).new_suffix == ""


class TestIncrementalScan:
    def test_open_marker_split_across_chunks(self):
        cursor = scan_reasoning("intro <thin", RegionCursor())
        assert not cursor.found
        cursor = scan_reasoning("intro <thinking>x", cursor)
        assert cursor.found
        assert cursor.text("intro <thinking>x") == "x"

    def test_close_marker_split_across_chunks(self):
        buffer = "<thinking>abc</thin"
        cursor = scan_reasoning(buffer, RegionCursor())
        assert cursor.text(buffer) == "abc"
        buffer += "king>after"
        cursor = scan_reasoning(buffer, cursor)
        assert cursor.closed
        assert cursor.text(buffer) == "abc"
        assert buffer[reasoning_body_end(cursor):] == "after"

    def test_body_end_requires_close(self):
        with pytest.raises(ValueError):
            reasoning_body_end(RegionCursor(start=10))


class TestMarkupRegion:
    def test_not_looked_for_before_reasoning_closes(self):
        buffer = "<thinking>I will write ```html\n<p>x</p>"
        assert extract(buffer, MARKUP) == Extraction("", False, False)

    def test_fenced_block(self):
        buffer = "<thinking>r</thinking>```html\n<p>x</p>\n```"
        assert extract(buffer, MARKUP) == Extraction("<p>x</p>\n", True, True)

    def test_text_after_fence_close_is_ignored(self):
        buffer = "<thinking>r</thinking>```html\n<p>x</p>```\nHope you like it!"
        assert extract(buffer, MARKUP).new_suffix == "<p>x</p>"

    def test_raw_document(self):
        buffer = "<thinking>r</thinking>Here: <!DOCTYPE html><html></html>"
        result = extract(buffer, MARKUP)
        assert result.new_suffix == "<!DOCTYPE html><html></html>"
        assert result.found and not result.closed

    def test_earliest_opener_wins(self):
        buffer = "<thinking>r</thinking><!DOCTYPE html>```html\n<p>"
        assert extract(buffer, MARKUP).new_suffix == "<!DOCTYPE html>```html\n<p>"

    def test_fence_before_document(self):
        buffer = "<thinking>r</thinking>```html\n<!DOCTYPE html><p>"
        assert extract(buffer, MARKUP).new_suffix == "<!DOCTYPE html><p>"

    def test_fence_waits_for_info_line(self):
        buffer = "<thinking>r</thinking>```html"
        assert not extract(buffer, MARKUP).found
        assert extract(buffer, MARKUP, final=True).found

    def test_case_insensitive_openers(self):
        fenced = "<thinking>r</thinking>```HTML\n<p>x</p>```"
        assert extract(fenced, MARKUP).new_suffix == "<p>x</p>"
        document = "<thinking>r</thinking><!doctype HTML><p>"
        assert extract(document, MARKUP).new_suffix == "<!doctype HTML><p>"

    def test_backticks_held_back_inside_fence(self):
        buffer = "<thinking>r</thinking>```html\n<p>a</p>`"
        assert extract(buffer, MARKUP).new_suffix == "<p>a</p>"
        assert extract(buffer + "`", MARKUP).new_suffix == "<p>a</p>"
        assert extract(buffer, MARKUP, final=True).new_suffix == "<p>a</p>`"

    def test_fence_close_split_across_scans(self):
        detector = HtmlMarkupDetector()
        buffer = "```html\n<p>a</p>``"
        cursor = detector.scan(buffer, RegionCursor(), 0)
        assert cursor.text(buffer) == "<p>a</p>"
        buffer += "`\nbye"
        cursor = detector.scan(buffer, cursor, 0)
        assert cursor.closed
        assert cursor.text(buffer) == "<p>a</p>"

    def test_opener_split_across_scans(self):
        detector = HtmlMarkupDetector()
        buffer = "text <!DOC"
        cursor = detector.scan(buffer, RegionCursor(), 0)
        assert not cursor.found
        buffer += "TYPE html><body>"
        cursor = detector.scan(buffer, cursor, 0)
        assert cursor.text(buffer) == "<!DOCTYPE html><body>"

    def test_floor_excludes_earlier_markers(self):
        detector = HtmlMarkupDetector()
        buffer = "<!DOCTYPE html> old ```html\n<p>new</p>```"
        cursor = detector.scan(buffer, RegionCursor(), 16)
        assert cursor.text(buffer) == "<p>new</p>"


class TestRescanMarkup:
    def test_without_reasoning_block(self):
        assert rescan_markup("Sure!\n```html\n<p>x</p>\n```") == "<p>x</p>\n"

    def test_inside_unclosed_reasoning(self):
        buffer = "<thinking>plan\n```html\n<!DOCTYPE html><p>x</p>"
        assert rescan_markup(buffer) == "<!DOCTYPE html><p>x</p>"

    def test_after_closed_reasoning(self):
        buffer = "<thinking>```html\n<p>draft</p>```</thinking><!DOCTYPE html><p>"
        assert rescan_markup(buffer) == "<!DOCTYPE html><p>"

    def test_nothing_found(self):
        assert rescan_markup("<thinking>r</thinking>Sorry.") == ""
