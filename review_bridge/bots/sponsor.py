"""The `integrate` and `sponsor` commands."""

import logging
import re

from ..census import may_commit
from ..models import Comment, HostUser
from .commands import CommandHandler
from .integration import REJECTED_LABEL, SPONSOR_LABEL, integrate_change


logger = logging.getLogger(__name__)

_READY_MARKER = "<!-- integration requested: '{}' -->"
_READY_PATTERN = re.compile(r"<!-- integration requested: '([0-9a-f]+)' -->")


class ReadyForSponsorTracker:
    """Finds the head hash at which the author asked for integration."""

    @staticmethod
    def add_integration_marker(head_hash: str) -> str:
        return _READY_MARKER.format(head_hash)

    @staticmethod
    def latest_ready_for_sponsor(bot_user: HostUser, comments: list[Comment]) -> str | None:
        latest = None
        for comment in comments:
            if comment.author != bot_user:
                continue
            for match in _READY_PATTERN.finditer(comment.body):
                latest = match.group(1)
        return latest


class IntegrationFailedError(RuntimeError):
    """Integration failed for a reason other than a policy decision."""


class IntegrateCommand(CommandHandler):
    description = "performs integration of the changes in the PR"

    def handle(self, bot, pr, scratch_path, args, comment, all_comments, reply) -> None:
        if comment.author != pr.author:
            print(f"Only the author (@{pr.author.username}) is allowed to issue the `integrate` command.", file=reply)
            return

        if REJECTED_LABEL in pr.labels:
            print("The change is currently blocked from integration by a rejection.", file=reply)
            return

        if not may_commit(bot.census, pr.author):
            print(ReadyForSponsorTracker.add_integration_marker(pr.head_hash), file=reply)
            print(
                f"This change is now ready for you to apply. Your change (at version {pr.head_hash}) "
                "is now ready to be sponsored by a Committer.",
                file=reply,
            )
            bot.client.add_label(pr, SPONSOR_LABEL)
            return

        try:
            integrate_change(bot, pr, pr.author, scratch_path / "pr.integrate", reply)
        except Exception as e:
            logger.exception(f"Integration of {pr} failed")
            print("An error occurred during integration", file=reply)
            raise IntegrationFailedError(f"Integration of {pr} failed") from e


class SponsorCommand(CommandHandler):
    description = "performs integration of a PR that is authored by a non-committer"

    def handle(self, bot, pr, scratch_path, args, comment, all_comments, reply) -> None:
        if may_commit(bot.census, pr.author):
            print("This change does not need sponsoring - the author is allowed to integrate it.", file=reply)
            return
        if not may_commit(bot.census, comment.author):
            print("Only Committers are allowed to sponsor changes.", file=reply)
            return

        ready_hash = ReadyForSponsorTracker.latest_ready_for_sponsor(bot.client.current_user(), all_comments)
        if ready_hash is None:
            print(
                f"The change author (@{pr.author.username}) must issue an `integrate` command "
                "before the integration can be sponsored.",
                file=reply,
            )
            return

        if pr.head_hash != ready_hash:
            print(
                f"The PR has been updated since the change author (@{pr.author.username}) "
                "issued the `integrate` command - the author must perform this command again.",
                file=reply,
            )
            return

        if REJECTED_LABEL in pr.labels:
            print("The change is currently blocked from integration by a rejection.", file=reply)
            return

        # Notify the author as well
        print(f"@{pr.author.username} ", end="", file=reply)

        try:
            integrate_change(bot, pr, comment.author, scratch_path / "pr.sponsor", reply)
        except Exception as e:
            logger.exception(f"Sponsored integration of {pr} failed")
            print("An error occurred during sponsored integration", file=reply)
            raise IntegrationFailedError(f"Sponsored integration of {pr} failed") from e
