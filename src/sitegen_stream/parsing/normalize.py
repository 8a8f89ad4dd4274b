"""Clean-up applied to the extracted markup before it is handed out.

Every insertion is guarded by a presence check, so
``normalize(normalize(x)) == normalize(x)``.
"""

from __future__ import annotations

import re

DOCTYPE = "<!DOCTYPE html>"
VIEWPORT_META = (
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
)
TAILWIND_SCRIPT = '<script src="https://cdn.tailwindcss.com"></script>'
FONT_BLOCK = (
    '<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800;900'
    "&family=Playfair+Display:wght@400;500;600;700"
    '&family=DM+Sans:wght@400;500;600;700&display=swap" rel="stylesheet">\n'
    "  <style>\n"
    "    * { font-family: 'Inter', sans-serif; scroll-behavior: smooth; }\n"
    "    .font-serif { font-family: 'Playfair Display', serif; }\n"
    "  </style>"
)

_DOCTYPE_RE = re.compile(r"^<!doctype\s+html", re.IGNORECASE)
_HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", re.IGNORECASE)
_DOCTYPE_TAG_RE = re.compile(r"<!doctype[^>]*>", re.IGNORECASE)
_FENCE_LINE_RE = re.compile(r"^[ \t]*```[^\n]*(\n|$)", re.MULTILINE)


def strip_fences(markup: str) -> str:
    """Remove code fence lines around (or left inside) *markup*."""
    lowered = markup.lower()
    idx = lowered.find("```html")
    if idx >= 0:
        body = markup[idx + len("```html") :]
        newline = body.find("\n")
        body = body[newline + 1 :] if newline >= 0 else body
        end = body.find("```")
        markup = body if end < 0 else body[:end]
    return _FENCE_LINE_RE.sub("", markup).strip()


def _ensure_head(html: str) -> str:
    if _HEAD_OPEN_RE.search(html):
        return html
    anchor = _HTML_OPEN_RE.search(html) or _DOCTYPE_TAG_RE.search(html)
    if anchor is None:
        return html + "\n<head>\n</head>"
    pos = anchor.end()
    return html[:pos] + "\n<head>\n</head>" + html[pos:]


def _insert_head_start(html: str, snippet: str) -> str:
    match = _HEAD_OPEN_RE.search(html)
    assert match is not None
    return html[: match.end()] + "\n  " + snippet + html[match.end() :]


def _insert_head_end(html: str, snippet: str) -> str:
    match = _HEAD_CLOSE_RE.search(html)
    if match is None:
        # truncated document: head never closed
        return _insert_head_start(html, snippet)
    return html[: match.start()] + "  " + snippet + "\n" + html[match.start() :]


def normalize(markup: str) -> str:
    """Make *markup* a self-sufficient page."""
    html = markup.strip()

    if not _DOCTYPE_RE.match(html):
        html = DOCTYPE + "\n" + html

    html = _ensure_head(html)

    if "viewport" not in html:
        html = _insert_head_start(html, VIEWPORT_META)

    if "tailwindcss.com" not in html:
        html = _insert_head_end(html, TAILWIND_SCRIPT)

    if "fonts.googleapis.com" not in html or "Inter" not in html:
        html = _insert_head_end(html, FONT_BLOCK)

    return html.strip()
