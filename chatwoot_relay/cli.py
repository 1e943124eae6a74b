"""Click CLI for running and exercising the relay."""

from __future__ import annotations

import asyncio
import json
import logging

import click

from chatwoot_relay.config import RelaySettings
from chatwoot_relay.dispatch.dispatcher import AIDispatcher
from chatwoot_relay.observability.sink import ObservabilitySink
from chatwoot_relay.providers import PROVIDERS, resolve


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Chatwoot AI webhook relay."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = RelaySettings.from_env()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
@click.option("--port", default=8000, type=int, help="Port to listen on.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Serve the webhook endpoints with uvicorn."""
    import uvicorn

    settings: RelaySettings = ctx.obj["settings"]
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "chatwoot_relay.server.app:create_app_from_env",
        factory=True,
        host=host,
        port=port,
    )


@cli.command()
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List known AI providers and the one currently selected."""
    settings: RelaySettings = ctx.obj["settings"]
    active = resolve(settings.ai_provider, settings.ai_api_url)
    click.echo(json.dumps({
        "active": active.key,
        "providers": [p.describe() for p in PROVIDERS.values()],
    }, indent=2, ensure_ascii=False))


@cli.command()
@click.argument("message")
@click.option(
    "--attempts", default=None, type=click.IntRange(min=1), help="Override AI_MAX_ATTEMPTS.",
)
@click.pass_context
def ask(ctx: click.Context, message: str, attempts: int | None) -> None:
    """Send MESSAGE to the configured AI provider and print the result."""
    settings: RelaySettings = ctx.obj["settings"]
    missing = settings.missing_ai_settings()
    if missing:
        raise click.UsageError(f"AI is not configured: missing {', '.join(missing)}")

    dispatcher = AIDispatcher(ObservabilitySink())
    result = asyncio.run(dispatcher.dispatch(
        message,
        settings.to_ai_config(),
        max_attempts=attempts or settings.ai_max_attempts,
    ))
    click.echo(result.model_dump_json(indent=2, exclude_none=True))
    if not result.success:
        ctx.exit(1)
