"""Async client for OpenAI-compatible chat-completion providers.

``open_stream()`` hands out the text delta of each upstream chunk; it does
not interpret the text.  Failures are raised as :mod:`sitegen_stream.errors`
exceptions and are never retried: a retry is a new user request.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

import httpx

from sitegen_stream.config import ProviderSpec
from sitegen_stream.errors import UpstreamRateLimited, UpstreamUnavailable

_logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 500


def _status_error(status_code: int, body: str) -> UpstreamUnavailable | UpstreamRateLimited:
    if status_code == 429:
        return UpstreamRateLimited(status_code=status_code)
    excerpt = body.strip()[:_ERROR_BODY_LIMIT]
    message = f"Model provider error ({status_code})"
    if excerpt:
        message = f"{message}: {excerpt}"
    return UpstreamUnavailable(message, status_code=status_code)


def _first_choice(data: Any) -> dict[str, Any] | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def _message_content(data: Any) -> str | None:
    """Text of a non-streaming completion, or None if the shape is wrong."""
    choice = _first_choice(data)
    if choice is None:
        return None
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content") or ""
    return content if isinstance(content, str) else None


def _delta_content(data: Any) -> str:
    choice = _first_choice(data)
    delta = choice.get("delta") if choice else None
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


class AsyncLLMClient:
    """Async client for one OpenAI-compatible provider."""

    def __init__(
        self,
        provider: ProviderSpec,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider = provider

        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=provider.url,
            headers=headers,
            timeout=httpx.Timeout(provider.timeout, connect=30),
            transport=transport,
        )
        self._stream_client = httpx.AsyncClient(
            base_url=provider.url,
            headers=headers,
            timeout=httpx.Timeout(provider.timeout, connect=30, read=60),
            transport=transport,
        )

    def _payload(
        self, messages: list[dict[str, Any]], model: str, stream: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": stream,
        }
        if self.provider.extra_params:
            payload.update(self.provider.extra_params)
        return payload

    # ------------------------------------------------------------------
    # Non-streaming chat
    # ------------------------------------------------------------------

    async def chat(self, messages: list[dict[str, Any]], model: str) -> str:
        """Send a non-streaming request and return the message text."""
        payload = self._payload(messages, model, stream=False)
        start = time.monotonic()
        try:
            resp = await self._client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Model provider unreachable: {e}") from e

        if resp.status_code >= 400:
            raise _status_error(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamUnavailable("Model provider returned invalid JSON") from e

        _logger.debug(
            "chat(%s) finished in %.0f ms", model, (time.monotonic() - start) * 1000,
        )
        content = _message_content(data)
        if content is None:
            raise UpstreamUnavailable("Model provider returned an unexpected payload")
        return content

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def open_stream(
        self, messages: list[dict[str, Any]], model: str,
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a streaming completion.

        Entering the context means the provider accepted the request; the
        yielded iterator then produces the text delta of each chunk.
        Transport failures while reading surface as
        :class:`UpstreamUnavailable`.
        """
        payload = self._payload(messages, model, stream=True)
        try:
            async with self._stream_client.stream(
                "POST", "/chat/completions", json=payload,
            ) as resp:
                if resp.status_code >= 400:
                    body = (await resp.aread()).decode(errors="replace")
                    _logger.error(
                        "Model provider returned %d: %s",
                        resp.status_code, body[:_ERROR_BODY_LIMIT],
                    )
                    raise _status_error(resp.status_code, body)
                yield self._iter_text(resp)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Model provider connection failed: {e}") from e

    async def _iter_text(self, resp: httpx.Response) -> AsyncGenerator[str, None]:
        start = time.monotonic()
        chunks = 0
        async for raw_line in resp.aiter_lines():
            if not raw_line.startswith("data: "):
                continue
            data_str = raw_line[6:].strip()
            if data_str == "[DONE]":
                break

            try:
                data = json.loads(data_str)
            except json.JSONDecodeError:
                _logger.debug("Skipping undecodable upstream line")
                continue

            chunk = _delta_content(data)
            if not chunk:
                continue
            chunks += 1
            yield chunk

        _logger.info(
            "Upstream stream finished: %d chunks in %.0f ms",
            chunks, (time.monotonic() - start) * 1000,
        )

    async def close(self) -> None:
        """Close underlying HTTP clients."""
        await self._client.aclose()
        await self._stream_client.aclose()
