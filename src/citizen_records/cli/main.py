"""Main CLI entry point for Citizen Records.

This module provides the main Click command group for the citizen-records CLI.
"""

from pathlib import Path
from typing import Optional

import click

from citizen_records import __version__
from citizen_records.cli.ledger_commands import (
    init_command,
    invoke_command,
    keys_command,
    query_command,
)
from citizen_records.cli.server_commands import serve_command
from citizen_records.config import load_config
from citizen_records.logging_audit import configure_logging
from citizen_records.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="citizen-records")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact PII (citizen names, government ids, birth dates) from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """Citizen Records - access-controlled citizen identity records on a ledger.

    Common usage:

        # Bootstrap the ledger state file
        citizen-records init

        # Create a citizen as the registry administrator
        citizen-records invoke create P1 1990-01-01 M --user registrar --role govt_admin

        # Read your own redacted record
        citizen-records query getRedactedEntity P1 --user P1 --role person

        # Serve the ledger over HTTP
        citizen-records serve --port 8080

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(
        level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting
    )


cli.add_command(init_command)
cli.add_command(invoke_command)
cli.add_command(query_command)
cli.add_command(keys_command)
cli.add_command(serve_command)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        citizen-records config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)

        click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
        click.echo(f"\nConfiguration file: {config_file}")
        click.echo("\nLedger:")
        click.echo(f"  State file:  {config_obj.ledger.state_file or 'in-memory'}")
        click.echo(f"  Variant:     {config_obj.ledger.variant.value}")
        click.echo(f"  Retries:     {config_obj.ledger.max_commit_retries}")

        click.echo("\nRoles:")
        click.echo(f"  Self:            {config_obj.roles.self_role}")
        click.echo(f"  Domain user:     {config_obj.roles.domain_user}")
        click.echo(f"  Domain admin:    {config_obj.roles.domain_admin}")
        click.echo(f"  Registry admin:  {config_obj.roles.registry_admin}")

        click.echo("\nServer:")
        click.echo(f"  Address:     {config_obj.server.host}:{config_obj.server.port}")

        click.echo("\nLogging:")
        click.echo(f"  Level:       {config_obj.logging.level}")
        click.echo(f"  Log file:    {config_obj.logging.log_file}")
        click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")

    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"citizen-records version {__version__}")


if __name__ == "__main__":
    cli()
