"""Decides whether a pull request may start its mailing list thread."""

import logging
import re

from .models import Comment, PullRequest, PullRequestState


logger = logging.getLogger(__name__)

INTEGRATED_LABEL = "integrated"


class ReadinessGate:
    """Preconditions for posting the first mail about a pull request.

    The gate is evaluated against the current labels and comments on every
    poll and only while nothing has been archived yet; once a thread exists
    it is always kept in sync.
    """

    def __init__(self, ready_labels: set[str], ready_comments: dict[str, re.Pattern]):
        """Initialize the gate.

        Args:
            ready_labels: Labels an open PR must carry.
            ready_comments: Username to pattern; each user must have a comment
                in which the pattern is found.
        """
        self.ready_labels = ready_labels
        self.ready_comments = ready_comments

    def is_ready(self, pr: PullRequest, comments: list[Comment]) -> bool:
        labels = set(pr.labels)

        if pr.state == PullRequestState.OPEN:
            for ready_label in sorted(self.ready_labels):
                if ready_label not in labels:
                    logger.debug(f"{pr} is not yet ready - missing label '{ready_label}'")
                    return False
        elif INTEGRATED_LABEL not in labels:
            logger.debug(f"Closed {pr} was not integrated - will not initiate a thread")
            return False

        for username, pattern in self.ready_comments.items():
            found = any(
                comment.author.username == username and pattern.search(comment.body) for comment in comments
            )
            if not found:
                logger.debug(
                    f"{pr} is not yet ready - missing ready comment from '{username}' "
                    f"containing '{pattern.pattern}'"
                )
                return False

        return True
