"""Rebase, validate and push a pull request onto its target branch."""

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING, TextIO
from urllib.parse import quote

from ..census import user_identity
from ..checks import CheckContext, approving_reviewers, run_checks
from ..git import LocalRepository, RepositoryError, push_with_rebase
from ..models import EmailIdentity, HostUser, PullRequest, PullRequestState


if TYPE_CHECKING:
    from .pull_request import PullRequestBot


logger = logging.getLogger(__name__)

INTEGRATED_LABEL = "integrated"
SPONSOR_LABEL = "sponsor"
READY_LABEL = "ready"
REJECTED_LABEL = "rejected"

_BRANCH = "integration"


class PullRequestInstance:
    """A private working copy of a pull request and its target branch."""

    def __init__(self, path: Path, url: str, pr: PullRequest):
        self.pr = pr
        self.url = url
        self.repo = LocalRepository.materialize(path, url, pr.target_ref, _BRANCH)
        self.target_hash = self.repo.head()
        if self.target_hash is None:
            raise RepositoryError(f"Target branch {pr.target_ref} of {pr} does not exist")
        self.head_hash = self.repo.fetch(url, pr.source_ref)
        self.base_hash = self.repo.merge_base(self.target_hash, self.head_hash)

    def commit(self, message: str, author: EmailIdentity, committer: EmailIdentity) -> str:
        """Squash the pull request into one commit on top of its merge base."""
        return self.repo.squash(self.base_hash, self.head_hash, message, author, committer)

    def rebase(self, commit: str, committer: EmailIdentity, reply: TextIO) -> str | None:
        """Move ``commit`` on top of the current target head.

        Returns:
            The rebased commit, or None if the rebase failed (the reason is
            written to ``reply``).
        """
        # Retried pushes rebase the checked out branch, so it must end in commit
        self.repo.checkout(_BRANCH, commit)
        if self.repo.is_ancestor(self.target_hash, commit):
            return commit

        try:
            rebased = self.repo.rebase(self.target_hash, committer)
        except RepositoryError as e:
            logger.info(f"Rebase of {self.pr} failed: {e}")
            print(
                "It was not possible to rebase your changes automatically. "
                f"Please merge `{self.pr.target_ref}` into your branch and try again.",
                file=reply,
            )
            return None

        print(
            f"Since your change was applied there have been commits pushed to the `{self.pr.target_ref}` "
            "branch. Your changes were automatically rebased without conflicts.",
            file=reply,
        )
        return rebased


def commit_message(pr: PullRequest, reviewers: list[str]) -> str:
    message = pr.title.strip() + "\n"
    if reviewers:
        message += f"\nReviewed-by: {', '.join(reviewers)}\n"
    return message


def integrate_change(
    bot: "PullRequestBot",
    pr: PullRequest,
    committer: HostUser,
    scratch_path: Path,
    reply: TextIO,
) -> None:
    """Integrate a pull request with ``committer`` as the committing user.

    Validation failures and rebase conflicts are reported in ``reply`` and
    leave the target branch untouched.
    """
    client = bot.client
    census = bot.census
    url = client.repository_url(pr.repository)
    path = scratch_path / quote(pr.repository, safe="")

    instance = PullRequestInstance(path, url, pr)
    reviews = client.reviews(pr)
    author_identity = user_identity(census, pr.author)
    committer_identity = user_identity(census, committer)

    local_hash = instance.commit(
        commit_message(pr, approving_reviewers(reviews, census)),
        author_identity,
        committer_identity,
    )

    rebase_output = io.StringIO()
    rebased = instance.rebase(local_hash, committer_identity, rebase_output)
    rebase_message = rebase_output.getvalue().rstrip("\n")
    if rebased is None:
        print(rebase_message, file=reply)
        return

    issues = run_checks(
        bot.checks,
        CheckContext(
            repo=instance.repo,
            pr=pr,
            commit=rebased,
            parent=instance.target_hash,
            reviews=reviews,
            census=census,
        ),
    )
    if issues:
        print("Your merge request cannot be fulfilled at this time, as your changes failed the final checks:", file=reply)
        for issue in issues:
            print(f" * {issue}", file=reply)
        return

    if rebased == instance.target_hash:
        print("Warning! This commit did not result in any changes! No push attempt will be made.", file=reply)
        return

    if rebase_message:
        print(rebase_message, file=reply)
    pushed = push_with_rebase(instance.repo, rebased, url, pr.target_ref, committer_identity)
    print(f"Pushed as commit {pushed}.", file=reply)

    client.set_state(pr, PullRequestState.CLOSED)
    client.add_label(pr, INTEGRATED_LABEL)
    client.remove_label(pr, SPONSOR_LABEL)
    client.remove_label(pr, READY_LABEL)
    logger.info(f"Integrated {pr} as {pushed}")
