"""CLI commands powered by Click."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click
from loguru import logger
from rich.console import Console
from rich.table import Table


def _load(ctx: click.Context) -> Any:
    from europarl_mcp.config.loader import load_config
    from europarl_mcp.utils.logger import setup_logger

    config = load_config(ctx.obj["config_path"])
    setup_logger(config.logging)
    return config


@click.group()
@click.option(
    "--config",
    "config_path",
    default="config/config.yaml",
    show_default=True,
    help="Path to config.yaml",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """European Parliament open-data tools."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ── tools ────────────────────────────────────────────────


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output tool metadata as JSON")
def tools(output_json: bool) -> None:
    """List available tools."""
    from europarl_mcp.tools.registry import TOOLS

    if output_json:
        click.echo(json.dumps([t.metadata() for t in TOOLS], indent=2))
        return

    table = Table(title=f"EP tools ({len(TOOLS)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Parameters", style="magenta")
    table.add_column("Description")
    for t in TOOLS:
        params = ", ".join(t.input_schema.get("properties", {}))
        table.add_row(t.name, params or "-", t.description)
    Console().print(table)


# ── call ─────────────────────────────────────────────────


@cli.command()
@click.argument("tool_name")
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object.")
@click.pass_context
def call(ctx: click.Context, tool_name: str, raw_args: str) -> None:
    """Call TOOL_NAME and print its JSON payload."""
    try:
        args = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        click.echo(f"✗ --args is not valid JSON: {exc}", err=True)
        raise SystemExit(2) from exc
    if not isinstance(args, dict):
        click.echo("✗ --args must be a JSON object", err=True)
        raise SystemExit(2)

    config = _load(ctx)

    async def _call() -> dict[str, Any]:
        from europarl_mcp.api.client import EuropeanParliamentClient
        from europarl_mcp.tools.registry import ToolRegistry

        async with EuropeanParliamentClient(config.api, config.cache) as client:
            registry = ToolRegistry(client)
            if tool_name not in registry:
                click.echo(f"✗ Unknown tool: {tool_name}", err=True)
                raise SystemExit(2)
            return await registry.call(tool_name, args)

    try:
        result = asyncio.run(_call())
    except KeyboardInterrupt:
        logger.info("Interrupted by user – exiting")
        return

    for item in result["content"]:
        click.echo(item["text"])
    if result.get("isError"):
        raise SystemExit(1)


# ── health ───────────────────────────────────────────────


@cli.command()
@click.option(
    "--probe/--no-probe",
    default=True,
    help="Send one small request to the EP API before reporting.",
)
@click.pass_context
def health(ctx: click.Context, probe: bool) -> None:
    """Report service health (API reachability, cache, rate limiter)."""
    config = _load(ctx)

    async def _health() -> dict[str, Any]:
        from europarl_mcp.api.client import EuropeanParliamentClient
        from europarl_mcp.utils.errors import MCPServerError
        from europarl_mcp.utils.health import HealthService

        async with EuropeanParliamentClient(config.api, config.cache) as client:
            if probe:
                try:
                    await client.get_meps(limit=1)
                except MCPServerError as exc:
                    logger.warning(f"Health probe failed: {exc.message}")
            service = HealthService(client.rate_limiter, client.metrics)
            return service.check_health().to_dict()

    status = asyncio.run(_health())
    click.echo(json.dumps(status, indent=2))
    if status["status"] == "unhealthy":
        raise SystemExit(1)


# ── limiter-status ───────────────────────────────────────


@cli.command("limiter-status")
@click.option(
    "--consume",
    type=click.IntRange(min=0),
    default=0,
    help="Take this many single tokens first to show the effect on the bucket.",
)
@click.pass_context
def limiter_status(ctx: click.Context, consume: int) -> None:
    """Show the configured token bucket and its current state."""
    from europarl_mcp.api.rate_limiter import TokenBucketRateLimiter

    config = _load(ctx)
    rl = config.api.rate_limit
    limiter = TokenBucketRateLimiter(rl.capacity, rl.interval, rl.initial_tokens)

    rejected = sum(1 for _ in range(consume) if not limiter.try_acquire(1))
    status = limiter.status()

    table = Table(title="Rate limiter")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Capacity", f"{limiter.capacity:g}")
    table.add_row("Interval", f"{rl.interval.value} ({limiter.refill_interval_ms:g} ms)")
    table.add_row("Available", str(status.available_tokens))
    table.add_row("Utilisation", f"{status.utilization_percent}%")
    if consume:
        table.add_row("Consumed", str(consume - rejected))
        table.add_row("Rejected", str(rejected))
    Console().print(table)


# ── check-config ─────────────────────────────────────────


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate configuration without contacting the API."""
    try:
        from europarl_mcp.config.loader import load_config

        config = load_config(ctx.obj["config_path"])
        rl = config.api.rate_limit
        click.echo("Config is valid!")
        click.echo(f"  API URL:      {config.api.base_url}")
        click.echo(f"  Timeout:      {config.api.timeout:g}s")
        click.echo(f"  Retries:      {config.api.max_retries if config.api.enable_retry else 0}")
        click.echo(f"  Rate limit:   {rl.capacity:g} per {rl.interval.value}")
        cache = config.cache
        if cache.enabled:
            click.echo(f"  Cache:        {cache.max_size} entries, ttl {cache.ttl:g}s")
        else:
            click.echo("  Cache:        disabled")
        click.echo(f"  Log level:    {config.logging.level}")

    except Exception as exc:
        click.echo(f"Config validation FAILED: {exc}", err=True)
        raise SystemExit(1) from exc
