"""Bots producing work items for the runner."""

from .archive import ARCHIVE_BRANCH, ArchiveCorruptError, ArchiveWorkItem
from .bridge import BridgeSettings, MailingListBridgeBot
from .cache import PullRequestUpdateCache
from .commands import CommandHandler, CommandWorkItem, HelpCommand
from .commit_comments import CommitCommandWorkItem, CommitCommentsWorkItem
from .integration import PullRequestInstance, integrate_change
from .pull_request import PullRequestBot
from .sponsor import IntegrateCommand, ReadyForSponsorTracker, SponsorCommand


__all__ = [
    "ARCHIVE_BRANCH",
    "ArchiveCorruptError",
    "ArchiveWorkItem",
    "BridgeSettings",
    "CommandHandler",
    "CommandWorkItem",
    "CommitCommandWorkItem",
    "CommitCommentsWorkItem",
    "HelpCommand",
    "IntegrateCommand",
    "MailingListBridgeBot",
    "PullRequestBot",
    "PullRequestInstance",
    "PullRequestUpdateCache",
    "ReadyForSponsorTracker",
    "SponsorCommand",
    "integrate_change",
]
