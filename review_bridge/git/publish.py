"""Optimistic publishing to a shared git repository.

Many writers append to the same remote ref. Instead of a lock, a writer
pushes, and when the push is rejected it fetches the new remote head,
rebases its own commits on top and tries again, a bounded number of times.
"""

from collections.abc import Callable
import logging

from ..models import EmailIdentity
from .repository import LocalRepository, RepositoryError


logger = logging.getLogger(__name__)

PUSH_ATTEMPTS = 3


class PushError(RepositoryError):
    """Raised when all push attempts were rejected."""


def push_with_rebase(
    repo: LocalRepository,
    commit: str,
    url: str,
    ref: str,
    identity: EmailIdentity,
    attempts: int = PUSH_ATTEMPTS,
) -> str:
    """Push ``commit`` to ``ref``, rebasing onto the remote head after each rejection.

    Args:
        repo: Working copy whose current branch ends in ``commit``.
        commit: Commit to publish.
        url: Remote repository.
        ref: Remote ref to update.
        identity: Committer used for rebased commits.
        attempts: Maximum number of pushes.

    Returns:
        The commit that was finally pushed.

    Raises:
        PushError: If every attempt failed; the last failure is the cause.
        RepositoryError: If fetching or rebasing after a failure fails.
    """
    last_error: RepositoryError | None = None

    for attempt in range(1, attempts + 1):
        try:
            repo.push(commit, url, ref)
            logger.info(f"Pushed {commit[:12]} to {url} ({ref})")
            return commit
        except RepositoryError as e:
            logger.info(f"Push to {url} failed (attempt {attempt}/{attempts}): {e}")
            last_error = e

        if attempt == attempts:
            break

        remote_head = repo.fetch(url, ref)
        commit = repo.rebase(remote_head, identity)
        logger.info(f"Rebase successful - new hash: {commit}")

    raise PushError(f"Giving up pushing to {url} ({ref}) after {attempts} attempts") from last_error


def publish(
    repo: LocalRepository,
    build_commit: Callable[[], str],
    url: str,
    ref: str,
    identity: EmailIdentity,
    attempts: int = PUSH_ATTEMPTS,
) -> str:
    """Create a commit with ``build_commit`` and push it with :func:`push_with_rebase`."""
    commit = build_commit()
    return push_with_rebase(repo, commit, url, ref, identity, attempts)


def commit_and_publish(
    repo: LocalRepository,
    message: str,
    url: str,
    ref: str,
    identity: EmailIdentity,
    attempts: int = PUSH_ATTEMPTS,
) -> str:
    """Commit every change in the working copy as ``identity`` and publish it."""

    def build_commit() -> str:
        repo.add_all()
        return repo.commit(message, identity)

    return publish(repo, build_commit, url, ref, identity, attempts)
