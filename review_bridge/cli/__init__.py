"""Command-line interface for Review Bridge."""

import logging
from pathlib import Path

import click

from .. import __version__
from ..config import Config, ensure_directories, load_config, set_config


logger = logging.getLogger(__name__)


def setup_logging(level: str, log_file: Path | None = None, force: bool = False) -> None:
    """Configure logging for the application.

    Args:
        level: Log level name.
        log_file: Optional file that receives a copy of the log.
        force: Replace handlers installed by an earlier call.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=force,
    )


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to config file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Review Bridge - mailing list bridge and sponsor bot for pull requests."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    # Commands that need the config load it themselves, so `init` works without one
    setup_logging("DEBUG" if verbose else "INFO")
    ctx.obj["config"] = None


def get_config(ctx: click.Context) -> Config:
    """Load and return config, caching it in context."""
    if ctx.obj.get("config") is not None:
        return ctx.obj["config"]

    config_path = ctx.obj.get("config_path")
    verbose = ctx.obj.get("verbose", False)

    cfg = load_config(config_path)
    set_config(cfg)
    ensure_directories(cfg)

    log_level = "DEBUG" if verbose else cfg.logging.level
    setup_logging(log_level, cfg.logging.resolved_file, force=True)

    ctx.obj["config"] = cfg
    return cfg


# Import and register subcommands
from . import (
    config_cmd,  # noqa: E402, F401
    run,  # noqa: E402, F401
    utils,  # noqa: E402, F401
)
