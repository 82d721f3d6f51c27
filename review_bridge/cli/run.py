"""Run commands for Review Bridge CLI."""

import logging
import signal
import sys

import click

from ..bots import MailingListBridgeBot, PullRequestBot
from ..census import StaticCensus
from ..config import Config
from ..forge import ForgeClient, GitHubClient
from ..runner import BotRunner
from . import get_config, main


logger = logging.getLogger(__name__)


def create_client(config: Config) -> GitHubClient:
    return GitHubClient(
        api_url=config.forge.api_url,
        web_url=config.forge.web_url,
        token=config.forge.token,
        clone_url=config.forge.clone_url,
    )


def build_runner(config: Config, client: ForgeClient | None = None) -> BotRunner:
    """Create the runner and one bot per configured repository."""
    client = client or create_client(config)
    census = StaticCensus.from_config(config.census)

    runner = BotRunner(
        bots=[],
        workers=config.polling.workers,
        interval_seconds=config.polling.interval_seconds,
        scratch_base=config.scratch.resolved_path,
    )

    for repository in config.mlbridge.repositories:
        runner.bots.append(
            MailingListBridgeBot.from_config(config, repository, client, census, retry_listener=runner.request_retry)
        )
    for repository in config.pr.repositories:
        runner.bots.append(PullRequestBot.from_config(config, repository, client, census))

    logger.info(f"Configured {len(runner.bots)} bots")
    return runner


@main.group()
def run():
    """Run the bots."""
    pass


@run.command("once")
@click.pass_context
def run_once(ctx: click.Context) -> None:
    """Run a single poll cycle."""
    try:
        config = get_config(ctx)
    except FileNotFoundError:
        click.echo("Error: Config file required", err=True)
        sys.exit(1)

    try:
        runner = build_runner(config)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not runner.bots:
        click.echo("No repositories configured")
        return

    click.echo("Running single poll cycle...")

    try:
        outcomes = runner.run_once()
    except Exception as e:
        logger.exception("Poll cycle failed")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    failed = sum(1 for outcome in outcomes if outcome.failed)
    click.echo(f"Executed {len(outcomes)} work items ({failed} failed)")


@run.command("daemon")
@click.pass_context
def run_daemon(ctx: click.Context) -> None:
    """Run as a polling daemon."""
    try:
        config = get_config(ctx)
    except FileNotFoundError:
        click.echo("Error: Config file required", err=True)
        sys.exit(1)

    try:
        runner = build_runner(config)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Starting polling daemon (interval: {config.polling.interval_seconds}s)")
    click.echo("Press Ctrl+C to stop")

    # Handle signals
    def signal_handler(signum, frame):
        click.echo("\nReceived shutdown signal...")
        runner.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        runner.run_daemon()
    except Exception as e:
        logger.exception("Daemon failed")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
