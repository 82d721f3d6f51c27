"""Interface to the code hosting forge."""

from abc import ABC, abstractmethod

from ..models import (
    Branch,
    Comment,
    CommitComment,
    HostUser,
    PullRequest,
    PullRequestState,
    Review,
    ReviewComment,
)


class ForgeError(RuntimeError):
    """Raised when a forge request fails."""


class ForgeClient(ABC):
    """Read accessors and mutations on pull requests and repositories."""

    @abstractmethod
    def current_user(self) -> HostUser:
        """The account the bot acts as."""

    @abstractmethod
    def pull_requests(self, repository: str) -> list[PullRequest]:
        """Recently updated pull requests, open and closed."""

    @abstractmethod
    def pull_request(self, repository: str, pr_id: str) -> PullRequest: ...

    @abstractmethod
    def comments(self, pr: PullRequest) -> list[Comment]: ...

    @abstractmethod
    def reviews(self, pr: PullRequest) -> list[Review]: ...

    @abstractmethod
    def review_comments(self, pr: PullRequest) -> list[ReviewComment]: ...

    @abstractmethod
    def add_comment(self, pr: PullRequest, body: str) -> Comment: ...

    @abstractmethod
    def update_comment(self, pr: PullRequest, comment_id: str, body: str) -> Comment: ...

    @abstractmethod
    def set_state(self, pr: PullRequest, state: PullRequestState) -> None: ...

    @abstractmethod
    def add_label(self, pr: PullRequest, label: str) -> None: ...

    @abstractmethod
    def remove_label(self, pr: PullRequest, label: str) -> None: ...

    @abstractmethod
    def branches(self, repository: str) -> list[Branch]: ...

    @abstractmethod
    def recent_commit_comments(self, repository: str) -> list[CommitComment]: ...

    @abstractmethod
    def add_commit_comment(self, repository: str, commit: str, body: str) -> CommitComment: ...

    @abstractmethod
    def repository_url(self, repository: str) -> str:
        """URL that git can clone, fetch from and push to."""

    @abstractmethod
    def files_url(self, pr: PullRequest, commit: str) -> str:
        """Web page showing the files of a pull request at a commit."""

    @abstractmethod
    def compare_url(self, repository: str, base: str, head: str) -> str:
        """Web page showing the diff between two commits."""
