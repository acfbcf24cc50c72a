import asyncio

import click
import orjson

from . import __version__
from .config import get_settings
from .providers import PRESETS
from .service import CompletionService
from .telemetry import setup_logging


def get_version():
    return __version__


def _echo_json(payload) -> None:
    click.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


async def _run_health_check() -> dict:
    settings = get_settings()
    service = CompletionService.from_settings(settings)
    results = await service.limiter.check_health()
    stats = service.get_service_stats()
    return {"checks": results, **stats.model_dump()}


@click.group()
def cli():
    """AI provider rate limiter tools."""
    pass


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def version(format):
    if format == "json":
        _echo_json({"version": get_version()})
    else:
        click.echo(f"v{get_version()}")


@cli.command()
def presets():
    """Print the default per-provider rate limit policies."""
    _echo_json(
        {
            name: {"priority": priority, "rate_limit": rate_limit.model_dump()}
            for name, (priority, rate_limit) in PRESETS.items()
        }
    )


@cli.command()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def health(log_level):
    """Run one health check against every configured provider."""
    setup_logging(level=log_level, json_output=False)
    report = asyncio.run(_run_health_check())
    _echo_json(report)
    if not report["is_healthy"]:
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
