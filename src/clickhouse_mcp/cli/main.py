"""clickhouse-mcp entry point and command registration."""

from __future__ import annotations

import sys
from pathlib import Path  # noqa: TC003
from typing import Annotated, Any

import sentry_sdk
import typer

from clickhouse_mcp.__about__ import __version__
from clickhouse_mcp.core.client import ChClient
from clickhouse_mcp.core.config import ResolvedConfig, load_config, resolve_config
from clickhouse_mcp.core.exceptions import ClickHouseMcpError
from clickhouse_mcp.core.exit_codes import ExitCode
from clickhouse_mcp.core.logging import get_logger, setup_logging
from clickhouse_mcp.core.metadata import MetadataService
from clickhouse_mcp.core.monitoring import setup_sentry
from clickhouse_mcp.rpc.session import McpSession

app = typer.Typer(
    help="clickhouse-mcp - ClickHouse metadata over the Model Context Protocol",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"clickhouse-mcp {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", help="ClickHouse HTTP(S) URL"),
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Default database"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Query timeout in seconds"),
    ] = None,
    max_retries: Annotated[
        int | None,
        typer.Option("--max-retries", help="Retries per backend query"),
    ] = None,
    retry_delay: Annotated[
        float | None,
        typer.Option("--retry-delay", help="Base backoff delay in seconds"),
    ] = None,
) -> None:
    """clickhouse-mcp - ClickHouse metadata over the Model Context Protocol."""
    setup_logging(verbose)
    setup_sentry()

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file
    ctx.obj["url"] = url
    ctx.obj["database"] = database
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["timeout"] = timeout
    ctx.obj["max_retries"] = max_retries
    ctx.obj["retry_delay"] = retry_delay


def get_config(ctx: typer.Context) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in (
        "url",
        "database",
        "user",
        "password",
        "timeout",
        "max_retries",
        "retry_delay",
    ):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val

    return resolve_config(config, **cli_overrides)


@app.command("serve")
def serve(ctx: typer.Context) -> None:
    """Serve MCP requests on stdin/stdout until end of input.

    The ClickHouse connection is opened when the client sends the
    ``initialized`` notification.
    """
    config = get_config(ctx)
    log = get_logger("cli")
    log.info("starting clickhouse-mcp", version=__version__, url=config.url)
    McpSession(config, reader=sys.stdin, writer=sys.stdout).run()


@app.command("check")
def check(ctx: typer.Context) -> None:
    """Connect to ClickHouse and run a health check."""
    config = get_config(ctx)
    with ChClient(config) as client:
        client.connect()
        MetadataService(client, config.retry_policy).health_check()
    typer.echo("ok")


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except ClickHouseMcpError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(ExitCode.GENERAL_ERROR) from None
