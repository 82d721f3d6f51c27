"""Review Bridge - mirrors pull request discussions to mailing lists and integrates sponsored changes."""

__version__ = "0.1.0"

# Re-export commonly used classes
from .bots import MailingListBridgeBot, PullRequestBot
from .forge import ForgeClient, ForgeError, GitHubClient
from .git import LocalRepository, PushError, RepositoryError
from .runner import BotRunner
from .workitem import Bot, WorkItem, WorkOutcome


__all__ = [
    "__version__",
    # Scheduling
    "Bot",
    "BotRunner",
    "WorkItem",
    "WorkOutcome",
    # Bots
    "MailingListBridgeBot",
    "PullRequestBot",
    # Forge
    "ForgeClient",
    "ForgeError",
    "GitHubClient",
    # Git
    "LocalRepository",
    "PushError",
    "RepositoryError",
]
