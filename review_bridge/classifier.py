"""Decides which pull request activity is mirrored to the mailing list."""

import logging
import re

from .commands import is_command_only
from .models import Comment, HostUser, Review, ReviewComment


logger = logging.getLogger(__name__)


class CommentClassifier:
    """Separates mirrored comments from ignored ones."""

    def __init__(
        self,
        bot_user: HostUser,
        ignored_users: set[str] | None = None,
        ignored_comments: list[re.Pattern] | None = None,
    ):
        """Initialize the classifier.

        Args:
            bot_user: The bot's own forge account; its comments are never mirrored.
            ignored_users: Usernames whose comments are never mirrored.
            ignored_comments: Patterns that, when found in a body, hide the comment.
        """
        self.bot_user = bot_user
        self.ignored_users = ignored_users or set()
        self.ignored_comments = ignored_comments or []

    def is_ignored(self, author: HostUser, body: str) -> bool:
        if author == self.bot_user:
            return True
        if author.username in self.ignored_users:
            return True
        if is_command_only(body):
            return True
        return any(pattern.search(body) for pattern in self.ignored_comments)

    def partition(self, comments: list[Comment]) -> tuple[list[Comment], list[Comment]]:
        """Split comments into (mirrored, ignored)."""
        mirrored, ignored = [], []
        for comment in comments:
            if self.is_ignored(comment.author, comment.body):
                ignored.append(comment)
            else:
                mirrored.append(comment)
        logger.debug(f"{len(mirrored)} comments mirrored, {len(ignored)} ignored")
        return mirrored, ignored

    def mirrored_reviews(self, reviews: list[Review]) -> list[Review]:
        return [review for review in reviews if not self.is_ignored(review.reviewer, review.body)]

    def mirrored_review_comments(self, review_comments: list[ReviewComment]) -> list[ReviewComment]:
        """Mirrored file comments grouped by file, then ordered by line."""
        ordered = sorted(review_comments, key=lambda c: (c.path, c.line))
        return [comment for comment in ordered if not self.is_ignored(comment.author, comment.body)]
