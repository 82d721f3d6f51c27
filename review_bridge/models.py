"""Data models for Review Bridge."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PullRequestState(str, Enum):
    """State of a pull request on the forge."""

    OPEN = "open"
    CLOSED = "closed"


class Verdict(str, Enum):
    """Outcome of a review."""

    APPROVED = "approved"
    DISAPPROVED = "disapproved"
    NONE = "none"


@dataclass(frozen=True)
class HostUser:
    """A user account on the forge. Two users are equal when their ids are."""

    id: str
    username: str = field(compare=False)
    full_name: str = field(default="", compare=False)


@dataclass
class Comment:
    """A general (issue-level) comment on a pull request."""

    id: str
    author: HostUser
    body: str
    created_at: datetime
    updated_at: datetime | None = None


@dataclass
class Review:
    """A review submitted on a pull request."""

    id: str
    reviewer: HostUser
    body: str
    verdict: Verdict
    hash: str
    created_at: datetime


@dataclass
class ReviewComment:
    """An inline comment attached to a file and line of a pull request."""

    id: str
    author: HostUser
    body: str
    path: str
    line: int
    hash: str
    created_at: datetime


@dataclass
class CommitComment:
    """A comment attached to a commit in a repository."""

    id: str
    commit: str
    author: HostUser
    body: str
    created_at: datetime


@dataclass
class Branch:
    """A branch head in a hosted repository."""

    name: str
    hash: str


@dataclass
class PullRequest:
    """Snapshot of a pull request as seen during one poll."""

    repository: str
    id: str
    title: str
    body: str
    author: HostUser
    state: PullRequestState
    labels: list[str]
    head_hash: str
    source_ref: str  # Ref that can be fetched from the target repository
    target_ref: str
    web_url: str
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the pull request across polls."""
        return (self.repository, self.id)

    def __str__(self) -> str:
        return f"{self.repository}#{self.id}"


@dataclass
class ListRule:
    """Mailing list that receives a PR when it carries one of the labels.

    An empty label set matches every pull request.
    """

    address: str
    labels: set[str] = field(default_factory=set)

    def matches(self, labels: set[str]) -> bool:
        if not self.labels:
            return True
        return any(label in self.labels for label in labels)


@dataclass(frozen=True)
class WebrevDescription:
    """A link to a generated diff view."""

    label: str
    uri: str


@dataclass(frozen=True)
class EmailIdentity:
    """Name and address used for commits and mails sent by the bot."""

    name: str
    address: str

    def __str__(self) -> str:
        return f"{self.name} <{self.address}>"
