"""Git operations for Review Bridge."""

from .publish import PUSH_ATTEMPTS, PushError, commit_and_publish, publish, push_with_rebase
from .repository import LocalRepository, RepositoryError


__all__ = [
    "PUSH_ATTEMPTS",
    "LocalRepository",
    "PushError",
    "RepositoryError",
    "commit_and_publish",
    "publish",
    "push_with_rebase",
]
