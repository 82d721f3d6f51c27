"""Dispatching of commands posted as comments on integrated commits."""

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..commands import parse_commands
from ..git import LocalRepository
from ..models import CommitComment
from ..workitem import WorkItem


if TYPE_CHECKING:
    from .pull_request import PullRequestBot


logger = logging.getLogger(__name__)

PULL_REQUEST_BRANCH_PREFIX = "pr/"


class CommitCommentsWorkItem(WorkItem):
    """Finds new comments on commits that landed on a tracked branch.

    Each comment is dispatched at most once per process. The processed set
    lives on the bot; an entry is released again when its command fails so
    that a later poll retries it.
    """

    def __init__(self, bot: "PullRequestBot"):
        self.bot = bot

    def __str__(self) -> str:
        return f"CommitCommentsWorkItem@{self.bot.repository}"

    def concurrent_with(self, other: WorkItem) -> bool:
        return True

    def _branch_heads(self, repo: LocalRepository) -> list[str]:
        client = self.bot.client
        url = client.repository_url(self.bot.repository)
        heads = []
        for branch in client.branches(self.bot.repository):
            if branch.name.startswith(PULL_REQUEST_BRANCH_PREFIX):
                continue
            heads.append(repo.fetch(url, branch.name))
        return heads

    def _on_integrated_branch(self, repo: LocalRepository, heads: list[str], commit: str) -> bool:
        if not repo.contains(commit):
            return False
        return any(repo.is_ancestor(commit, head) for head in heads)

    def run(self, scratch_path: Path) -> list[WorkItem]:
        comments = self.bot.client.recent_commit_comments(self.bot.repository)
        processed = self.bot.processed_commit_comments
        candidates = [c for c in comments if c.id not in processed]
        if not candidates:
            return []

        repo = LocalRepository.init(scratch_path / "commit_comments")
        heads = self._branch_heads(repo)

        items: list[WorkItem] = []
        for comment in candidates:
            if not self._on_integrated_branch(repo, heads, comment.commit):
                logger.debug(f"Ignoring comment {comment.id} on {comment.commit[:12]}, not on a tracked branch")
                continue

            processed[comment.id] = comment.commit

            def on_error(error: Exception, comment_id=comment.id) -> None:
                processed.pop(comment_id, None)

            items.append(CommitCommandWorkItem(self.bot, comment, on_error))

        logger.debug(f"{self}: {len(items)} new commit comments")
        return items


class CommitCommandWorkItem(WorkItem):
    """Executes the commands found in a single commit comment."""

    def __init__(self, bot: "PullRequestBot", comment: CommitComment, exception_consumer=None):
        self.bot = bot
        self.comment = comment
        self.exception_consumer = exception_consumer

    def __str__(self) -> str:
        return f"CommitCommandWorkItem@{self.bot.repository}:{self.comment.commit[:12]}#{self.comment.id}"

    def concurrent_with(self, other: WorkItem) -> bool:
        if not isinstance(other, CommitCommandWorkItem):
            return True
        return other.comment.commit != self.comment.commit

    def run(self, scratch_path: Path) -> list[WorkItem]:
        client = self.bot.client
        if self.comment.author == client.current_user():
            return []

        commands = parse_commands(self.comment.body)
        if not commands:
            return []

        reply = io.StringIO()
        for command in commands:
            handler = self.bot.commit_commands.get(command.name)
            if handler is None:
                print(
                    f"Unknown command `{command.name}` - for a list of valid commands use `/help`.",
                    file=reply,
                )
                continue
            handler.handle(self.bot, self.comment, command.args, reply)

        client.add_commit_comment(self.bot.repository, self.comment.commit, reply.getvalue())
        return []

    def handle_runtime_exception(self, error: Exception) -> None:
        if self.exception_consumer is not None:
            self.exception_consumer(error)


class CommitHelpCommand:
    """Lists the commands available in commit comments."""

    description = "shows this text"

    def handle(self, bot: "PullRequestBot", comment: CommitComment, args: str, reply) -> None:
        print("Available commands:", file=reply)
        for name, handler in sorted(bot.commit_commands.items()):
            print(f" * {name} - {handler.description}", file=reply)
