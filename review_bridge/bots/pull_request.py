"""Bot answering commands in pull requests and commit comments."""

import logging

from ..census import Census
from ..checks import Check, default_checks
from ..config import Config
from ..forge import ForgeClient
from ..models import EmailIdentity, HostUser, PullRequestState
from ..workitem import Bot, WorkItem
from .cache import PullRequestUpdateCache
from .commands import CommandHandler, CommandWorkItem, HelpCommand
from .commit_comments import CommitCommentsWorkItem, CommitHelpCommand
from .sponsor import IntegrateCommand, SponsorCommand


logger = logging.getLogger(__name__)


class PullRequestBot(Bot):
    """Emits command work for updated pull requests and new commit comments."""

    def __init__(
        self,
        client: ForgeClient,
        census: Census,
        repository: str,
        identity: EmailIdentity,
        checks: list[Check] | None = None,
    ):
        self.client = client
        self.census = census
        self.repository = repository
        self.identity = identity
        self.checks = default_checks() if checks is None else checks
        self.update_cache = PullRequestUpdateCache()
        # Commit comment id -> commit hash, for every comment already dispatched
        self.processed_commit_comments: dict[str, str] = {}
        self.commands: dict[str, CommandHandler] = {
            "help": HelpCommand(),
            "integrate": IntegrateCommand(),
            "sponsor": SponsorCommand(),
        }
        self.commit_commands = {
            "help": CommitHelpCommand(),
        }

    def __str__(self) -> str:
        return f"PullRequestBot@{self.repository}"

    @classmethod
    def from_config(cls, config: Config, repository: str, client: ForgeClient, census: Census) -> "PullRequestBot":
        return cls(
            client,
            census,
            repository,
            config.bot.identity,
            checks=default_checks(config.pr.min_reviewers),
        )

    @property
    def bot_user(self) -> HostUser:
        return self.client.current_user()

    def get_periodic_items(self) -> list[WorkItem]:
        items: list[WorkItem] = []

        for pr in self.client.pull_requests(self.repository):
            if pr.state != PullRequestState.OPEN:
                continue
            if not self.update_cache.needs_update(pr):
                continue

            def on_error(error: Exception, pr=pr) -> None:
                self.update_cache.invalidate(pr)

            items.append(CommandWorkItem(pr, self, on_error))

        items.append(CommitCommentsWorkItem(self))
        logger.debug(f"{self}: {len(items)} work items")
        return items
