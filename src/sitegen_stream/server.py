"""FastAPI app exposing the generation stream.

``POST /generate`` answers with one long-lived ``text/event-stream`` body
carrying the frames of a single session.  ``GET /health`` is a liveness
check.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from sitegen_stream.config import SitegenConfig
from sitegen_stream.core.coordinator import StreamCoordinator
from sitegen_stream.llm.client import AsyncLLMClient
from sitegen_stream.protocol.wire import MEDIA_TYPE, encode_frame
from sitegen_stream.types import ConversationTurn, GenerationRequest

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request schema
# ---------------------------------------------------------------------------

class TurnBody(BaseModel):
    speaker: str = "user"
    text: str


class GenerateBody(BaseModel):
    instruction: str = Field(min_length=1)
    history: list[TurnBody] = []
    prior_artifact: str | None = None
    image: str | None = None

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            instruction=self.instruction,
            history=tuple(ConversationTurn(t.speaker, t.text) for t in self.history),
            prior_artifact=self.prior_artifact,
            image=self.image,
        )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    config: SitegenConfig,
    coordinator: StreamCoordinator | None = None,
) -> FastAPI:
    """Build the app.  Without *coordinator* one is created from *config*."""
    owned_client: AsyncLLMClient | None = None
    if coordinator is None:
        owned_client = AsyncLLMClient(config.provider)
        coordinator = StreamCoordinator(owned_client, config.provider, config.generation)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _logger.info(
            "sitegen-stream started (model=%s, origins=%s, auth=%s)",
            config.provider.model,
            config.server.allowed_origins,
            "enabled" if config.server.api_key else "disabled",
        )
        yield
        if owned_client is not None:
            await owned_client.close()
        _logger.info("sitegen-stream shutting down")

    app = FastAPI(title="sitegen-stream", lifespan=lifespan)
    app.state.coordinator = coordinator
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def verify_api_key(request: Request) -> None:
        """Check X-API-Key when a key is configured."""
        if not config.server.api_key:
            return
        if request.headers.get("X-API-Key") != config.server.api_key:
            raise HTTPException(status_code=401, detail="Invalid or missing API key")

    @app.post("/generate", dependencies=[Depends(verify_api_key)])
    async def generate(body: GenerateBody, request: Request):
        """Stream the frames of one generation session."""
        coordinator = request.app.state.coordinator

        async def stream():
            async for frame in coordinator.run(body.to_request()):
                yield encode_frame(frame)

        return StreamingResponse(
            stream(),
            media_type=MEDIA_TYPE,
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @app.get("/health")
    async def health():
        """Liveness check."""
        return {"status": "healthy", "model": config.provider.model}

    return app
