"""Interfaces of the systems a finished generation is handed to.

Storage, credits and version history live outside this package.  The
protocols below are what the consumer calls; the small implementations are
enough for the CLI and for tests.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from sitegen_stream.errors import SitegenError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """What a successful session hands to persistence."""

    final_markup: str
    note: str
    instruction: str


class InsufficientCredits(SitegenError):
    """Not enough credits left. Upgrade your plan to continue."""

    code = "insufficient_credits"


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class ArtifactStore(Protocol):
    async def record(self, result: GenerationResult) -> None:
        """Append the conversation turn and overwrite the artifact of record."""


class CreditLedger(Protocol):
    async def consume_unit(self) -> None:
        """Charge one generation."""


class VersionHistory(Protocol):
    async def snapshot(self, artifact: str) -> None:
        """Keep *artifact* so it can be restored later."""


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

@dataclass
class InMemoryArtifactStore:
    artifact: str | None = None
    turns: list[dict[str, str]] = field(default_factory=list)

    async def record(self, result: GenerationResult) -> None:
        self.turns.append({"speaker": "user", "text": result.instruction})
        self.turns.append({"speaker": "assistant", "text": result.note})
        self.artifact = result.final_markup


class FileArtifactStore:
    """Writes the artifact to *path* and appends turns to ``<path>.turns.jsonl``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.turns_path = self.path.with_name(self.path.name + ".turns.jsonl")

    async def record(self, result: GenerationResult) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(result.final_markup, encoding="utf-8")
        with open(self.turns_path, "a", encoding="utf-8") as f:
            for speaker, text in (("user", result.instruction), ("assistant", result.note)):
                f.write(json.dumps({"speaker": speaker, "text": text}, ensure_ascii=False) + "\n")
        _logger.info("Artifact written to %s", self.path)


@dataclass
class FixedCreditLedger:
    """Fixed cost of one unit per generation."""

    balance: int | None = None  # None = unmetered
    consumed: int = 0

    async def consume_unit(self) -> None:
        if self.balance is not None:
            if self.balance < 1:
                raise InsufficientCredits()
            self.balance -= 1
        self.consumed += 1


@dataclass
class InMemoryVersionHistory:
    versions: list[str] = field(default_factory=list)

    async def snapshot(self, artifact: str) -> None:
        self.versions.append(artifact)

    def undo(self) -> str | None:
        """Pop and return the latest snapshot."""
        return self.versions.pop() if self.versions else None
