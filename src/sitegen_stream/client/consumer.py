"""Client side of the generation stream.

``StreamConsumer`` posts a request to the generation server, decodes the
frames it sends back, and keeps a :class:`ClientViewState` that a UI can
render while the page is being written.  At most one session runs per
consumer; starting a new one cancels the previous one first.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, replace
from typing import Any

import httpx

from sitegen_stream.client.collaborators import (
    ArtifactStore,
    CreditLedger,
    GenerationResult,
    VersionHistory,
)
from sitegen_stream.errors import SitegenError
from sitegen_stream.events.bus import EventBus
from sitegen_stream.protocol.wire import FrameDecoder
from sitegen_stream.types import (
    IDLE_VIEW,
    ClientViewState,
    Completed,
    EventType,
    Failed,
    GenerationEvent,
    GenerationRequest,
    MarkupDelta,
    Phase,
    PhaseEntered,
    ReasoningDelta,
    StreamFrame,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    """How a session ended."""

    status: str  # "completed" | "failed" | "cancelled"
    final_markup: str = ""
    note: str = ""
    error: str | None = None
    error_code: str | None = None
    side_effect_errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == "completed"


CANCELLED = GenerationOutcome(status="cancelled")


def _describe(exc: Exception) -> str:
    if isinstance(exc, SitegenError):
        return exc.message
    return str(exc) or exc.__class__.__name__


def _refusal_reason(resp: httpx.Response, body: bytes) -> str:
    try:
        data: Any = resp.json() if body else None
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("error", "detail", "message"):
            if isinstance(data.get(key), str):
                return data[key]
    return f"Generation server returned {resp.status_code}"


class StreamConsumer:
    """Reads one generation stream at a time and applies its side effects."""

    def __init__(
        self,
        base_url: str,
        store: ArtifactStore,
        ledger: CreditLedger,
        history: VersionHistory | None = None,
        bus: EventBus | None = None,
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30,
    ) -> None:
        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, read=300),
            transport=transport,
        )
        self._store = store
        self._ledger = ledger
        self._history = history
        self._bus = bus

        self._view: ClientViewState = IDLE_VIEW
        self._task: asyncio.Task[GenerationOutcome] | None = None
        self._reading = False
        self._cancelled: weakref.WeakSet[asyncio.Task[GenerationOutcome]] = weakref.WeakSet()
        self.skipped_frames = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def view(self) -> ClientViewState:
        return self._view

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, request: GenerationRequest) -> asyncio.Task[GenerationOutcome]:
        """Cancel any running session and start a new one."""
        await self.cancel()
        self._view = ClientViewState(active=True)
        self._reading = True
        await self._emit(EventType.GENERATION_STARTED, instruction=request.instruction)
        self._task = asyncio.create_task(self._run(request))
        return self._task

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        """Start a session and wait for it to end."""
        task = await self.start(request)
        try:
            return await task
        except asyncio.CancelledError:
            if task in self._cancelled:
                return CANCELLED
            raise

    async def cancel(self) -> None:
        """Stop reading the current session, if any, and go back to idle.

        A session whose terminal frame has already arrived is not revoked;
        this waits for its side effects to finish instead.
        """
        task, self._task = self._task, None
        if task is None or task.done():
            self._view = IDLE_VIEW
            return

        interrupted = self._reading
        if interrupted:
            self._cancelled.add(task)
            task.cancel()
        await asyncio.wait([task])
        self._reading = False
        self._view = IDLE_VIEW
        if interrupted:
            _logger.info("Generation cancelled by user")
            await self._emit(EventType.GENERATION_CANCELLED)

    async def aclose(self) -> None:
        await self.cancel()
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def _run(self, request: GenerationRequest) -> GenerationOutcome:
        if request.prior_artifact and self._history is not None:
            try:
                await self._history.snapshot(request.prior_artifact)
            except Exception as e:
                _logger.error("Version snapshot failed: %s", e)
                return await self._fail(
                    f"Could not save the current version: {_describe(e)}", "versioning",
                )

        try:
            terminal = await self._read(request)
        except httpx.HTTPError as e:
            return await self._fail(f"Connection to generation server failed: {e}", "transport")

        self._reading = False
        if isinstance(terminal, Completed):
            return await self._complete(terminal, request)
        if isinstance(terminal, Failed):
            return await self._fail(terminal.reason, terminal.code)
        return await self._fail("Generation stream ended unexpectedly", "truncated")

    async def _read(self, request: GenerationRequest) -> Completed | Failed | None:
        """Apply frames until a terminal one arrives; return it."""
        decoder = FrameDecoder()
        try:
            async with self._client.stream(
                "POST", "/generate", json=request.to_dict(),
            ) as resp:
                if resp.status_code >= 400:
                    body = await resp.aread()
                    return Failed(_refusal_reason(resp, body), f"http_{resp.status_code}")

                async for text in resp.aiter_text():
                    for frame in decoder.feed(text):
                        if isinstance(frame, (Completed, Failed)):
                            return frame
                        await self._apply(frame)

            for frame in decoder.close():
                if isinstance(frame, (Completed, Failed)):
                    return frame
                await self._apply(frame)
            return None
        finally:
            self.skipped_frames += decoder.skipped

    async def _apply(self, frame: StreamFrame) -> None:
        if isinstance(frame, PhaseEntered):
            self._view = replace(self._view, phase=frame.phase)
            await self._emit(EventType.GENERATION_PHASE, phase=frame.phase.value)
        elif isinstance(frame, ReasoningDelta):
            self._view = replace(
                self._view, reasoning_so_far=self._view.reasoning_so_far + frame.text,
            )
            await self._emit(EventType.GENERATION_REASONING, delta=frame.text)
        elif isinstance(frame, MarkupDelta):
            self._view = replace(
                self._view, markup_so_far=self._view.markup_so_far + frame.text,
            )
            await self._emit(EventType.GENERATION_MARKUP, delta=frame.text)

    async def _complete(self, frame: Completed, request: GenerationRequest) -> GenerationOutcome:
        self._view = replace(
            self._view, phase=Phase.COMPLETED, markup_so_far=frame.final_markup,
        )
        errors: list[str] = []
        result = GenerationResult(frame.final_markup, frame.note, request.instruction)

        try:
            await self._store.record(result)
        except Exception as e:
            _logger.error("Saving the generated site failed: %s", e)
            errors.append(f"Could not save the generated site: {_describe(e)}")

        try:
            await self._ledger.consume_unit()
        except Exception as e:
            _logger.error("Credit consumption failed: %s", e)
            errors.append(f"Could not consume a credit: {_describe(e)}")

        await self._emit(
            EventType.GENERATION_COMPLETED, note=frame.note, warnings=list(errors),
        )
        self._view = IDLE_VIEW
        return GenerationOutcome(
            status="completed",
            final_markup=frame.final_markup,
            note=frame.note,
            side_effect_errors=tuple(errors),
        )

    async def _fail(self, reason: str, code: str) -> GenerationOutcome:
        self._reading = False
        self._view = ClientViewState(error=reason)
        _logger.warning("Generation failed [%s]: %s", code, reason)
        await self._emit(EventType.GENERATION_FAILED, reason=reason, code=code)
        return GenerationOutcome(status="failed", error=reason, error_code=code)

    async def _emit(self, event_type: EventType, **data: Any) -> None:
        if self._bus is not None:
            await self._bus.emit(GenerationEvent(type=event_type, view=self._view, data=data))
