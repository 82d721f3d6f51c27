"""Handling of slash commands posted as pull request comments."""

from abc import ABC, abstractmethod
import io
import logging
from pathlib import Path
import re
from typing import TYPE_CHECKING, TextIO

from ..commands import parse_commands
from ..models import Comment, PullRequest
from ..workitem import WorkItem


if TYPE_CHECKING:
    from .pull_request import PullRequestBot


logger = logging.getLogger(__name__)

REPLY_MARKER = "<!-- command reply for comment ({}) -->"
_REPLY_PATTERN = re.compile(r"<!-- command reply for comment \((\S+)\) -->")


class CommandHandler(ABC):
    """A command users can issue in a pull request comment."""

    description: str

    @abstractmethod
    def handle(
        self,
        bot: "PullRequestBot",
        pr: PullRequest,
        scratch_path: Path,
        args: str,
        comment: Comment,
        all_comments: list[Comment],
        reply: TextIO,
    ) -> None:
        """Execute the command, writing the user facing answer to ``reply``."""


class HelpCommand(CommandHandler):
    description = "shows this text"

    def handle(self, bot, pr, scratch_path, args, comment, all_comments, reply) -> None:
        print("Available commands:", file=reply)
        for name, handler in sorted(bot.commands.items()):
            print(f" * {name} - {handler.description}", file=reply)


def handled_comment_ids(bot_user, comments: list[Comment]) -> set[str]:
    """Ids of comments the bot already replied to."""
    handled = set()
    for comment in comments:
        if comment.author == bot_user:
            handled.update(_REPLY_PATTERN.findall(comment.body))
    return handled


class CommandWorkItem(WorkItem):
    """Executes the commands of a pull request that have not been answered yet."""

    def __init__(self, pr: PullRequest, bot: "PullRequestBot", exception_consumer=None):
        self.pr = pr
        self.bot = bot
        self.exception_consumer = exception_consumer

    def __str__(self) -> str:
        return f"CommandWorkItem@{self.pr.repository}#{self.pr.id}"

    def concurrent_with(self, other: WorkItem) -> bool:
        if not isinstance(other, CommandWorkItem):
            return True
        return other.pr.key != self.pr.key

    def run(self, scratch_path: Path) -> list[WorkItem]:
        client = self.bot.client
        bot_user = client.current_user()
        comments = client.comments(self.pr)
        handled = handled_comment_ids(bot_user, comments)

        for comment in comments:
            if comment.author == bot_user or comment.id in handled:
                continue
            commands = parse_commands(comment.body)
            if not commands:
                continue
            self._process(comment, commands, comments, scratch_path)

        return []

    def _process(self, comment: Comment, commands, comments: list[Comment], scratch_path: Path) -> None:
        reply = io.StringIO()
        try:
            for command in commands:
                handler = self.bot.commands.get(command.name)
                if handler is None:
                    print(
                        f"Unknown command `{command.name}` - for a list of valid commands use `/help`.",
                        file=reply,
                    )
                    continue
                logger.info(f"{self.pr}: executing /{command.name} from {comment.author.username}")
                handler.handle(self.bot, self.pr, scratch_path, command.args, comment, comments, reply)
        finally:
            body = REPLY_MARKER.format(comment.id) + "\n" + reply.getvalue()
            self.bot.client.add_comment(self.pr, body)

    def handle_runtime_exception(self, error: Exception) -> None:
        if self.exception_consumer is not None:
            self.exception_consumer(error)
