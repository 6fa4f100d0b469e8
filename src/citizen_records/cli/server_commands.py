"""CLI command for running the HTTP ledger host."""

import logging
from typing import Optional

import click

from citizen_records.config.schema import Config, ServerConfig
from citizen_records.server.app import run_server

logger = logging.getLogger(__name__)


@click.command(name="serve")
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Port number (overrides config)")
@click.pass_context
def serve_command(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Serve the ledger over HTTP.

    Endpoints: POST /invoke, POST /query, GET /health. Caller attributes are
    taken from the X-Caller-Username and X-Caller-Role headers.

    Example:
        citizen-records serve --port 8080
    """
    config: Config = ctx.obj["config"] if ctx.obj and "config" in ctx.obj else Config()

    server = config.server.model_dump()
    if host is not None:
        server["host"] = host
    if port is not None:
        server["port"] = port
    try:
        config = config.model_copy(update={"server": ServerConfig(**server)})
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    click.echo(f"Starting ledger server on http://{config.server.host}:{config.server.port}")
    run_server(config)
