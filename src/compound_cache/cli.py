"""Typer CLI entrypoint."""
from __future__ import annotations

import json
from pathlib import Path

import typer

from compound_cache.config import AppConfig, load_config
from compound_cache.exceptions import CompoundCacheError, ConfigError
from compound_cache.identifiers import CompoundIdentifier
from compound_cache.logger import bind_global_context, configure_logging, get_logger
from compound_cache.resolver import PubChemResolver
from compound_cache.store import CompoundCache

CONFIG_OPTION = typer.Option(None, "--config", exists=True, dir_okay=False, help="Path to a YAML config file.")
CACHE_OPTION = typer.Option(None, "--cache", dir_okay=False, help="Cache document to read and write.")
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Override the configured log level.")
IDENTIFIERS_ARGUMENT = typer.Argument(
    ...,
    help="Compounds as namespace:value (cid, name, smiles, inchi, inchikey); bare values are names.",
)
IDENTIFIER_ARGUMENT = typer.Argument(..., help="Compound as namespace:value.")

app = typer.Typer(help="Local cache for PubChem compound properties", no_args_is_help=True)

logger = get_logger(__name__)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Path | None = CONFIG_OPTION,
    cache: Path | None = CACHE_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Load configuration and set up logging for every command."""
    overrides: dict[str, dict[str, object]] = {}
    if cache is not None:
        overrides["cache"] = {"path": str(cache)}
    if log_level is not None:
        overrides["logging"] = {"level": log_level}
    try:
        app_config = load_config(config, overrides=overrides)
        configure_logging(app_config.logging.to_log_config())
    except (ConfigError, ValueError) as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    bind_global_context(command=ctx.invoked_subcommand)
    ctx.obj = app_config


def _open_cache(app_config: AppConfig) -> CompoundCache:
    return CompoundCache.load(app_config.cache.path, PubChemResolver(app_config.pubchem))


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    identifiers: list[str] = IDENTIFIERS_ARGUMENT,
    overwrite: bool = typer.Option(False, "--overwrite", help="Refetch entries that are already cached."),
) -> None:
    """Cache the properties of each compound and write the cache back."""
    app_config: AppConfig = ctx.obj
    cache = _open_cache(app_config)
    failures = 0
    for raw in identifiers:
        try:
            identifier = CompoundIdentifier.parse(raw)
            was_cached = identifier in cache
            if overwrite:
                cache.overwrite(identifier)
                status = "refreshed"
            else:
                cache.store(identifier)
                status = "hit" if was_cached else "fetched"
        except CompoundCacheError as exc:
            failures += 1
            logger.error("fetch_failed", identifier=raw, error=exc.to_dict())
            typer.echo(f"{raw}\terror: {exc}", err=True)
            continue
        properties = cache.get_cached(identifier)
        cid = properties.cid if properties is not None else None
        typer.echo(f"{identifier}\t{status}\tcid={cid}")

    cache.save(app_config.cache.path, indent=app_config.cache.indent)
    typer.echo(f"Wrote to {app_config.cache.path}.")
    if failures:
        raise typer.Exit(code=1)


@app.command("show")
def show_command(
    ctx: typer.Context,
    identifier: str = IDENTIFIER_ARGUMENT,
    fetch: bool = typer.Option(False, "--fetch", help="Resolve the compound and cache it when needed."),
) -> None:
    """Print the cached properties of a compound as JSON."""
    app_config: AppConfig = ctx.obj
    cache = _open_cache(app_config)
    try:
        key = CompoundIdentifier.parse(identifier)
        if fetch:
            _, properties = cache.get_or_fetch(key)
            cache.save(app_config.cache.path, indent=app_config.cache.indent)
        else:
            properties = cache.get_cached(key)
    except CompoundCacheError as exc:
        logger.error("show_failed", identifier=identifier, error=exc.to_dict())
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if properties is None:
        typer.echo(f"{key} is not cached", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(properties.to_dict(), indent=2, ensure_ascii=False))


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List cached compounds."""
    app_config: AppConfig = ctx.obj
    cache = CompoundCache.load(app_config.cache.path)
    for identifier, properties in cache.items():
        typer.echo(f"{identifier}\t{properties.title}")


def main() -> None:
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    main()
