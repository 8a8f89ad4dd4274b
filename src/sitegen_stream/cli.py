"""Command line entry point: run the server or generate a site from a brief."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.panel import Panel

from sitegen_stream.client.collaborators import (
    FileArtifactStore,
    FixedCreditLedger,
    InMemoryVersionHistory,
)
from sitegen_stream.client.consumer import GenerationOutcome, StreamConsumer
from sitegen_stream.config import SitegenConfig, load_config
from sitegen_stream.core.coordinator import StreamCoordinator
from sitegen_stream.errors import ConfigError
from sitegen_stream.events.bus import EventBus
from sitegen_stream.llm.client import AsyncLLMClient
from sitegen_stream.server import create_app
from sitegen_stream.types import EventType, GenerationEvent, GenerationRequest

console = Console()

_PHASE_LABELS = {
    "thinking": "Thinking...",
    "analyzing": "Analysing the brief",
    "designing": "Designing",
    "generating": "Writing the page",
}


def _load(config_path: str | None) -> SitegenConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(e.message) from e


def _render(event: GenerationEvent) -> None:
    if event.type is EventType.GENERATION_PHASE:
        label = _PHASE_LABELS.get(event.data["phase"], event.data["phase"])
        console.print(f"[bold cyan]>[/bold cyan] {label}")
    elif event.type is EventType.GENERATION_REASONING:
        console.print(event.data["delta"], style="dim", end="")
    elif event.type is EventType.GENERATION_FAILED:
        console.print(f"[bold red]Failed:[/bold red] {event.data['reason']}")
    elif event.type is EventType.GENERATION_CANCELLED:
        console.print("[yellow]Cancelled[/yellow]")


async def _generate(
    config: SitegenConfig,
    request: GenerationRequest,
    out: Path,
    server_url: str | None,
) -> GenerationOutcome:
    bus = EventBus()
    bus.subscribe("*", _render)

    llm: AsyncLLMClient | None = None
    transport: httpx.AsyncBaseTransport | None = None
    if server_url is None:
        llm = AsyncLLMClient(config.provider)
        coordinator = StreamCoordinator(llm, config.provider, config.generation)
        transport = httpx.ASGITransport(app=create_app(config, coordinator))
        server_url = "http://sitegen.local"

    consumer = StreamConsumer(
        server_url,
        store=FileArtifactStore(out),
        ledger=FixedCreditLedger(),
        history=InMemoryVersionHistory(),
        bus=bus,
        api_key=config.server.api_key,
        transport=transport,
    )
    try:
        return await consumer.generate(request)
    finally:
        await consumer.aclose()
        if llm is not None:
            await llm.close()


@click.group()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to sitegen.yaml (auto-detected from CWD or ~/.config/sitegen/)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """sitegen - stream websites out of a language model."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)
    ctx.obj = config_path


@main.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", default=None, type=int, help="Port (default from config)")
@click.pass_obj
def serve(config_path: str | None, host: str | None, port: int | None) -> None:
    """Run the generation server."""
    import uvicorn

    config = _load(config_path)
    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


@main.command()
@click.argument("brief")
@click.option("--out", "-o", default="site.html", type=click.Path(dir_okay=False),
              help="Where to write the generated page")
@click.option("--update", "-u", is_flag=True,
              help="Send the existing --out file as the page to modify")
@click.option("--server", "server_url", default=None,
              help="Use a running server instead of an in-process one")
@click.pass_obj
def generate(config_path: str | None, brief: str, out: str, update: bool,
             server_url: str | None) -> None:
    """Generate (or update) a page from BRIEF."""
    config = _load(config_path)
    out_path = Path(out)
    prior = None
    if update and out_path.exists():
        prior = out_path.read_text(encoding="utf-8")

    request = GenerationRequest(instruction=brief, prior_artifact=prior)
    outcome = asyncio.run(_generate(config, request, out_path, server_url))

    console.print()
    if not outcome.ok:
        raise click.ClickException(outcome.error or "Generation failed")
    console.print(Panel(outcome.note, title="Designer note", border_style="cyan"))
    for warning in outcome.side_effect_errors:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    console.print(f"[green]Saved {len(outcome.final_markup)} chars to {out_path}[/green]")


if __name__ == "__main__":
    main()
