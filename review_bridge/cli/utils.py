"""Utility commands for Review Bridge CLI."""

from pathlib import Path

import click

from . import main


EXAMPLE_CONFIG = """\
# Review Bridge Configuration
forge:
  api_url: "https://api.github.com"
  web_url: "https://github.com"
  token: "${GITHUB_TOKEN}"
  clone_url: "https://github.com/{repository}.git"

bot:
  name: "Review Bridge"
  email: "bridge@example.org"

census:
  domain: "example.org"
  namespace: "github"
  contributors: []

archive:
  url: "https://github.com/example/mailing-list-archive.git"
  ref: "master"

mlbridge:
  repositories: []
  lists:
    - address: "dev@example.org"
  ready_labels:
    - "rfr"
  cooldown_seconds: 60

pr:
  repositories: []
  min_reviewers: 1

polling:
  interval_seconds: 60
  workers: 4
"""


@main.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Initialize Review Bridge configuration."""
    config_path = Path.cwd() / "config.yaml"
    example_path = Path(__file__).parent.parent.parent / "config.example.yaml"

    if config_path.exists():
        click.echo(f"Config file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    # Copy example config
    if example_path.exists():
        config_path.write_text(example_path.read_text())
    else:
        config_path.write_text(EXAMPLE_CONFIG)

    click.echo(f"Created config file: {config_path}")
    click.echo("\nNext steps:")
    click.echo("1. Edit config.yaml with your forge URL and bot identity")
    click.echo("2. Add repositories to the 'mlbridge' and 'pr' sections")
    click.echo("3. Set the GITHUB_TOKEN environment variable")
    click.echo("4. Run 'review-bridge config check'")
