"""Validation run on a change right before it is integrated."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from .census import Census
from .git import LocalRepository
from .models import PullRequest, Review, Verdict


logger = logging.getLogger(__name__)


@dataclass
class CheckContext:
    """Everything a check may look at."""

    repo: LocalRepository
    pr: PullRequest
    commit: str
    parent: str
    reviews: list[Review]
    census: Census


class Check(ABC):
    """A single validation rule."""

    name: str

    @abstractmethod
    def check(self, context: CheckContext) -> list[str]:
        """Return one message per violation, empty if the change passes."""


class TitleCheck(Check):
    name = "title"

    def check(self, context: CheckContext) -> list[str]:
        message = context.repo.message(context.commit)
        title = message.splitlines()[0].strip() if message.strip() else ""
        if not title:
            return ["The commit message does not have a title"]
        return []


class WhitespaceCheck(Check):
    """Rejects trailing whitespace and tabs in added lines."""

    name = "whitespace"

    def check(self, context: CheckContext) -> list[str]:
        issues = []
        for path, lines in sorted(context.repo.added_lines(context.parent, context.commit).items()):
            if any(line != line.rstrip() for line in lines):
                issues.append(f"{path}: trailing whitespace")
            if any("\t" in line for line in lines):
                issues.append(f"{path}: tab character")
        return issues


def approving_reviewers(reviews: list[Review], census: Census) -> list[str]:
    """Usernames of project Reviewers whose latest verdict is an approval."""
    latest: dict[str, Review] = {}
    for review in sorted(reviews, key=lambda r: r.created_at):
        if review.verdict != Verdict.NONE:
            latest[review.reviewer.id] = review

    usernames = []
    for review in latest.values():
        if review.verdict != Verdict.APPROVED:
            continue
        contributor = census.contributor(review.reviewer)
        if contributor is not None and census.is_reviewer(contributor.username):
            usernames.append(contributor.username)
    return sorted(usernames)


class ReviewersCheck(Check):
    name = "reviewers"

    def __init__(self, min_reviewers: int = 1):
        self.min_reviewers = min_reviewers

    def check(self, context: CheckContext) -> list[str]:
        count = len(approving_reviewers(context.reviews, context.census))
        if count < self.min_reviewers:
            return [f"Too few reviewers with at least role reviewer found (have {count}, need {self.min_reviewers})"]
        return []


def default_checks(min_reviewers: int = 1) -> list[Check]:
    return [TitleCheck(), WhitespaceCheck(), ReviewersCheck(min_reviewers)]


def run_checks(checks: list[Check], context: CheckContext) -> list[str]:
    issues = []
    for check in checks:
        found = check.check(context)
        if found:
            logger.info(f"Check '{check.name}' failed for {context.pr}: {found}")
        issues.extend(found)
    return issues
