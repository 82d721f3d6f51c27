"""Configuration commands for Review Bridge CLI."""

import sys

import click
from pydantic import ValidationError

from . import get_config, main


@main.group("config")
def config_group():
    """Configuration commands."""
    pass


@config_group.command("check")
@click.pass_context
def config_check(ctx: click.Context) -> None:
    """Validate the configuration and print a summary."""
    try:
        config = get_config(ctx)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (ValidationError, ValueError) as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    click.echo("Configuration OK")
    click.echo("=" * 40)
    click.echo(f"Forge: {config.forge.api_url}")
    click.echo(f"Bot identity: {config.bot.identity}")
    click.echo(f"Census: {len(config.census.contributors)} contributors ({config.census.domain})")
    if config.archive:
        click.echo(f"Archive: {config.archive.url} ({config.archive.ref})")
    else:
        click.echo("Archive: not configured")

    click.echo()
    click.echo("Mailing list bridge")
    click.echo("-" * 40)
    for repository in config.mlbridge.repositories:
        click.echo(f"  {repository}")
    for entry in config.mlbridge.lists:
        labels = ", ".join(entry.labels) if entry.labels else "all"
        click.echo(f"  -> {entry.address} ({labels})")

    click.echo()
    click.echo("Pull request commands")
    click.echo("-" * 40)
    for repository in config.pr.repositories:
        click.echo(f"  {repository}")

    if config.mlbridge.repositories and config.archive is None:
        click.echo("\nError: mlbridge repositories need an archive repository", err=True)
        sys.exit(1)
