#!/usr/bin/env python3
"""optionsengine CLI - inspect and edit option records."""

import functools
import json
import sys
from collections.abc import Callable
from typing import Any, Optional

import click
import yaml

from optionsengine.core.exceptions import OptionsEngineError
from optionsengine.core.schema import SchemaRegistry
from optionsengine.core.schema_loader import load_schema_file
from optionsengine.observability.config import LoggingConfig, get_config
from optionsengine.observability.logging import configure_logging, correlation_context, get_logger
from optionsengine.options.register_options import RegisterOptions
from optionsengine.storage.config import StorageConfig

EXIT_WRITE_FAILED = 2

logger = get_logger(__name__)


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn engine errors into ``Error:`` lines with exit code 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (OptionsEngineError, FileNotFoundError) as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def _open(ctx: click.Context, name: str) -> RegisterOptions:
    storage_config: StorageConfig = ctx.obj["storage_config"]
    context = storage_config.create_context()
    logger.debug("opening_record", record=name, context=context.get_cache_key())
    return RegisterOptions(name, ctx.obj["host"], context, storage_config.autoload_on_create)


def _parse_value(raw: str) -> Any:
    """Parse a command-line value as a YAML scalar or flow collection."""
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _dump(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=True).rstrip()


def _write_result(ok: bool, success: str, failure: str) -> None:
    if ok:
        click.echo(success)
        return
    click.echo(failure, err=True)
    sys.exit(EXIT_WRITE_FAILED)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Storage configuration YAML file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default from OPTIONSENGINE_LOG_LEVEL)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    help="Log format (default from OPTIONSENGINE_LOG_FORMAT)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """optionsengine - schema-driven options storage."""
    ctx.ensure_object(dict)

    logging_config = get_config().logging.model_dump()
    if log_level:
        logging_config["level"] = log_level
    if log_format:
        logging_config["format"] = log_format
    configure_logging(LoggingConfig(**logging_config))

    ctx.obj["correlation_id"] = ctx.with_resource(correlation_context())

    try:
        storage_config = (
            StorageConfig.from_yaml_file(config_path) if config_path else StorageConfig()
        )
        ctx.obj["storage_config"] = storage_config
        ctx.obj["host"] = storage_config.create_host()
    except OptionsEngineError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("name")
@click.option("--format", "-f", "fmt", type=click.Choice(["yaml", "json"]), default="yaml")
@click.pass_context
@_handle_errors
def show(ctx: click.Context, name: str, fmt: str) -> None:
    """Show every stored option of record NAME."""
    options = _open(ctx, name).get_options()
    if fmt == "json":
        click.echo(json.dumps(options, indent=2, sort_keys=True, default=str))
    else:
        click.echo(_dump(options) if options else "{}")


@cli.command()
@click.argument("name")
@click.argument("key")
@click.pass_context
@_handle_errors
def get(ctx: click.Context, name: str, key: str) -> None:
    """Print option KEY of record NAME."""
    opts = _open(ctx, name)
    if not opts.has_option(key):
        raise click.ClickException(f"Option '{key}' not found in '{name}'")
    value = opts.get_option(key)
    click.echo(_dump(value) if isinstance(value, (dict, list)) else json.dumps(value, default=str))


@cli.command(name="set")
@click.argument("name")
@click.argument("key")
@click.argument("value")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Schema YAML file describing the record's options",
)
@click.pass_context
@_handle_errors
def set_command(ctx: click.Context, name: str, key: str, value: str, schema_path: str) -> None:
    """Validate VALUE and persist it as option KEY of record NAME."""
    opts = _open(ctx, name)
    opts.register_schema(load_schema_file(schema_path))
    ok = opts.set_option(key, _parse_value(value))
    for option_key, warnings in opts.take_warnings().items():
        for warning in warnings:
            click.echo(f"Warning [{option_key}]: {warning}", err=True)
    _write_result(ok, f"Set {key} on {name}", f"Write of '{key}' to '{name}' was denied or failed")


@cli.command()
@click.argument("name")
@click.argument("key")
@click.pass_context
@_handle_errors
def delete(ctx: click.Context, name: str, key: str) -> None:
    """Delete option KEY from record NAME."""
    ok = _open(ctx, name).delete_option(key)
    _write_result(ok, f"Deleted {key} from {name}", f"Option '{key}' was not deleted from '{name}'")


@cli.command()
@click.argument("name")
@click.confirmation_option(prompt="Remove every option from this record?")
@click.pass_context
@_handle_errors
def clear(ctx: click.Context, name: str) -> None:
    """Remove every option from record NAME."""
    ok = _open(ctx, name).clear()
    _write_result(ok, f"Cleared {name}", f"Clearing '{name}' was denied or failed")


@cli.command()
@click.argument("name")
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Schema YAML file whose defaults seed the record",
)
@click.pass_context
@_handle_errors
def seed(ctx: click.Context, name: str, schema_path: str) -> None:
    """Create record NAME from schema defaults if it doesn't exist."""
    opts = _open(ctx, name)
    opts.register_schema(load_schema_file(schema_path))
    ok = opts.seed_if_missing(opts.get_options())
    _write_result(ok, f"Seeded {name}", f"Seeding '{name}' was denied or failed")


@cli.command()
@click.argument("schema_path", type=click.Path(exists=True, dir_okay=False))
@_handle_errors
def schema(schema_path: str) -> None:
    """Validate a schema file and print its exported view."""
    registry = SchemaRegistry()
    registry.register_many(load_schema_file(schema_path))
    exported = registry.export()
    click.echo(_dump(exported) if exported else "{}")


@cli.command()
def version() -> None:
    """Show optionsengine version."""
    from optionsengine import __version__

    click.echo(f"optionsengine v{__version__}")


def main() -> int:
    """Main entry point."""
    try:
        cli()
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
