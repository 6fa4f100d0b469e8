"""Ledger CLI commands.

This module provides Click commands for bootstrapping a ledger and running
invocations against it, either in-process on the configured state file or on
a remote HTTP ledger host.

Commands:
    init [--credential NAME=CERT ...] - Seed registry and credentials
    invoke FUNCTION [ARGS...] - Run a mutating invocation
    query FUNCTION [ARGS...] - Run a read-only query
    keys - List registered citizen ids
"""

import logging
import sys
from typing import Optional

import click

from citizen_records.config.schema import ClientConfig, Config
from citizen_records.host.executor import LedgerHost
from citizen_records.identity.resolver import ROLE_ATTRIBUTE, USERNAME_ATTRIBUTE
from citizen_records.models.responses import InvocationResult, InvocationStatus
from citizen_records.router.operations import InvocationMode
from citizen_records.transport.http_client import LedgerClient
from citizen_records.utils.exceptions import CitizenRecordsError, create_error_info

logger = logging.getLogger(__name__)


def _config(ctx: click.Context) -> Config:
    if ctx.obj and "config" in ctx.obj:
        return ctx.obj["config"]
    return Config()


def _parse_credentials(values: tuple[str, ...]) -> dict[str, str]:
    credentials = {}
    for value in values:
        name, sep, cert = value.partition("=")
        if not sep or not name:
            raise click.BadParameter(
                f"Expected NAME=CERT, got '{value}'", param_hint="--credential"
            )
        credentials[name] = cert
    return credentials


@click.command(name="init")
@click.option(
    "--credential",
    "credentials",
    multiple=True,
    help="Pre-provisioned credential as NAME=CERT (repeatable)",
)
@click.pass_context
def init_command(ctx: click.Context, credentials: tuple[str, ...]) -> None:
    """Bootstrap the ledger: seed the registry and credentials.

    An existing registry is kept, so running init twice is safe.

    Example:
        citizen-records init --credential alice=-----BEGIN CERTIFICATE-----...
    """
    config = _config(ctx)
    parsed = _parse_credentials(credentials)
    try:
        host = LedgerHost.from_config(config)
        host.bootstrap(parsed)
    except CitizenRecordsError as e:
        _fail(e)

    click.echo(click.style("✓", fg="green", bold=True) + " Ledger initialized")
    click.echo(f"  State file:  {config.ledger.state_file or 'in-memory'}")
    click.echo(f"  Variant:     {config.ledger.variant.value}")
    click.echo(f"  Credentials: {len(parsed)}")


def _invocation_options(func):
    func = click.option(
        "--remote",
        default=None,
        help="Base URL of a remote ledger host (default: run in-process)",
    )(func)
    func = click.option("--role", required=True, help="Caller role attribute")(func)
    func = click.option("--user", required=True, help="Caller username attribute")(func)
    func = click.argument("args", nargs=-1)(func)
    func = click.argument("function")(func)
    return func


@click.command(name="invoke")
@_invocation_options
@click.pass_context
def invoke_command(
    ctx: click.Context,
    function: str,
    args: tuple[str, ...],
    user: str,
    role: str,
    remote: Optional[str],
) -> None:
    """Run a mutating invocation.

    Example:
        citizen-records invoke create P1 1990-01-01 M --user registrar --role govt_admin
    """
    _run(ctx, InvocationMode.INVOKE, function, list(args), user, role, remote)


@click.command(name="query")
@_invocation_options
@click.pass_context
def query_command(
    ctx: click.Context,
    function: str,
    args: tuple[str, ...],
    user: str,
    role: str,
    remote: Optional[str],
) -> None:
    """Run a read-only query.

    Example:
        citizen-records query getRedactedEntity P1 --user P1 --role person
    """
    _run(ctx, InvocationMode.QUERY, function, list(args), user, role, remote)


@click.command(name="keys")
@click.pass_context
def keys_command(ctx: click.Context) -> None:
    """List registered citizen ids in creation order."""
    try:
        ids = LedgerHost.from_config(_config(ctx)).registered_ids()
    except CitizenRecordsError as e:
        _fail(e)

    for person_id in ids:
        click.echo(person_id)
    logger.debug(f"Listed {len(ids)} registered ids")


def _run(
    ctx: click.Context,
    mode: InvocationMode,
    function: str,
    args: list[str],
    user: str,
    role: str,
    remote: Optional[str],
) -> None:
    config = _config(ctx)
    client_config = None
    if remote:
        try:
            client_config = ClientConfig(**{**config.client.model_dump(), "base_url": remote})
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--remote") from e

    try:
        if client_config is not None:
            with LedgerClient(client_config) as client:
                result = client.execute(function, args, mode, user=user, role=role)
        else:
            host = LedgerHost.from_config(config)
            attributes = {USERNAME_ATTRIBUTE: user, ROLE_ATTRIBUTE: role}
            result = host.execute(function, args, attributes, mode)
    except CitizenRecordsError as e:
        _fail(e)

    _echo_result(result)


def _echo_result(result: InvocationResult) -> None:
    if result.status is InvocationStatus.ERROR:
        click.echo(click.style("✗", fg="red", bold=True) + f" {result.message}", err=True)
        sys.exit(1)

    if result.payload:
        click.echo(result.payload_text())
    if result.status is InvocationStatus.NOT_UNIQUE and result.message:
        click.echo(result.message, err=True)


def _fail(error: CitizenRecordsError) -> None:
    info = create_error_info(error)
    click.echo(click.style("✗", fg="red", bold=True) + f" {info.message}", err=True)
    click.echo(f"  {info.remediation}", err=True)
    sys.exit(1)
