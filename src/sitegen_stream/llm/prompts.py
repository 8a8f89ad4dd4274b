"""Prompt building for website generation requests."""

from __future__ import annotations

import re
from typing import Any

from sitegen_stream.config import GenerationSpec
from sitegen_stream.types import GenerationRequest

_PERSONA = """You are an elite web designer and front-end developer.
You talk like a friendly, competent colleague, explain your design choices
briefly, and never pad the page with placeholder copy."""

_OUTPUT_FORMAT = """## Output format
1. Reason inside <thinking></thinking> first.
2. Then output ONE complete HTML document in a ```html fenced block,
   starting with <!DOCTYPE html>, styled with Tailwind CSS."""

CREATIVE_PROMPT = f"""{_PERSONA}

## Creative mode
Build an exceptional, production-ready landing page.

Inside <thinking> analyse before coding:
- the precise niche and the ideal customer
- the emotion the page must convey and what makes the business unique
- the colour palette for this niche
- the list of sections you will build

Quality bar: at least 7 complete sections, sticky navbar, strong hero,
responsive sm/md/lg/xl breakpoints, hover states on every button and card,
real copy for the niche, real Unsplash images, complete footer.

{_OUTPUT_FORMAT}"""

REPAIR_PROMPT = f"""{_PERSONA}

## Repair mode
The user reports a problem with the current page.

Rules:
1. Identify the exact problem inside <thinking>.
2. Find the technical cause.
3. Apply the MINIMAL fix. Do not redesign, do not touch working parts,
   do not add features nobody asked for.

{_OUTPUT_FORMAT}"""

VISION_PROMPT = f"""{_PERSONA}

## Vision mode
You receive a reference image. Inside <thinking> analyse its layout,
palette, typography, spacing, distinctive elements and overall mood.
Reproduce the style and mood, not the pixels. Keep the visual hierarchy,
add micro-interactions, make it responsive.

{_OUTPUT_FORMAT}"""

NOTE_PROMPT = """Summarise what you just built in 3-4 sentences at most.
Mention the chosen style, explain ONE key design choice, suggest ONE
possible improvement. Warm designer tone, at most 2-3 emojis."""

_REPAIR_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\b(bug|error|broken|crash(es|ed)?)\b",
        r"\b(missing|disappeared|invisible|wrong|incorrect)\b",
        r"\b(fix|repair|debug|resolve)\b",
        r"\b(do(es)? ?not|do(es)?n'?t|won'?t|not) (show|display|work|appear)",
        r"\b(erreur|probl[eè]me|cass[ée]|corrige|r[ée]pare|manque)\b",
        r"(marche|fonctionne|s'?affiche) pas",
    )
]

MODES = ("creative", "repair", "vision")


def has_image_data(image: str | None) -> bool:
    return bool(image) and image.startswith("data:image/")


def detect_mode(request: GenerationRequest) -> str:
    """Pick ``vision``, ``repair`` or ``creative`` for *request*."""
    if has_image_data(request.image):
        return "vision"
    if any(p.search(request.instruction) for p in _REPAIR_PATTERNS):
        return "repair"
    return "creative"


_SYSTEM_PROMPTS = {
    "creative": CREATIVE_PROMPT,
    "repair": REPAIR_PROMPT,
    "vision": VISION_PROMPT,
}


def _user_content(request: GenerationRequest, mode: str, spec: GenerationSpec) -> Any:
    artifact = request.prior_artifact or ""
    if mode == "vision":
        if artifact.strip():
            text = (
                f"Current site:\n```html\n{artifact[: spec.vision_context_chars]}\n```\n\n"
                f"Instruction: {request.instruction}\n\n"
                "Analyse the image and change the site accordingly."
            )
        else:
            text = (
                f"Instruction: {request.instruction}\n\n"
                "Analyse this image and build a premium website inspired by it."
            )
        return [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": request.image}},
        ]
    if artifact.strip():
        return (
            f"Current site:\n```html\n{artifact[: spec.artifact_context_chars]}\n```\n\n"
            f"New request: {request.instruction}\n\n"
            "Think first inside <thinking></thinking>, then output the complete "
            "modified HTML."
        )
    return (
        f"Build a premium professional website for: {request.instruction}\n\n"
        "Think first inside <thinking></thinking> about the niche, then output "
        "the complete HTML with a sticky navbar, a strong hero, at least 7 "
        "sections and a complete footer."
    )


def build_messages(
    request: GenerationRequest, spec: GenerationSpec,
) -> tuple[list[dict[str, Any]], str]:
    """Return the chat messages for *request* and the detected mode."""
    mode = detect_mode(request)
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": _SYSTEM_PROMPTS[mode]},
    ]
    window = request.history[-spec.history_window :] if spec.history_window else ()
    for turn in window:
        role = "user" if turn.speaker == "user" else "assistant"
        messages.append({"role": role, "content": turn.text})
    messages.append({"role": "user", "content": _user_content(request, mode, spec)})
    return messages, mode


def build_note_messages(
    instruction: str, reasoning: str, mode: str,
) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": NOTE_PROMPT},
        {
            "role": "user",
            "content": (
                f'User brief: "{instruction}"\n\n'
                f"Designer reasoning:\n{reasoning[:1500]}\n\nMode: {mode}"
            ),
        },
    ]
