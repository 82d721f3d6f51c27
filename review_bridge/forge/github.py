"""GitHub REST API client."""

from datetime import datetime
import logging
from typing import Any

import requests

from ..models import (
    Branch,
    Comment,
    CommitComment,
    HostUser,
    PullRequest,
    PullRequestState,
    Review,
    ReviewComment,
    Verdict,
)
from .base import ForgeClient, ForgeError


logger = logging.getLogger(__name__)

_VERDICTS = {
    "APPROVED": Verdict.APPROVED,
    "CHANGES_REQUESTED": Verdict.DISAPPROVED,
}


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _user(data: dict[str, Any]) -> HostUser:
    return HostUser(id=str(data["id"]), username=data["login"], full_name=data.get("name") or data["login"])


class GitHubClient(ForgeClient):
    """Forge client for GitHub and GitHub Enterprise."""

    def __init__(
        self,
        api_url: str,
        web_url: str,
        token: str | None = None,
        clone_url: str = "https://github.com/{repository}.git",
        timeout: int = 30,
    ):
        """Initialize the client.

        Args:
            api_url: REST API root, e.g. https://api.github.com.
            web_url: Web root, e.g. https://github.com.
            token: Access token for the bot account.
            clone_url: Git URL template with a {repository} placeholder.
            timeout: Request timeout in seconds.
        """
        self.api_url = api_url.rstrip("/")
        self.web_url = web_url.rstrip("/")
        self.clone_url = clone_url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["Accept"] = "application/vnd.github+json"
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self._current_user: HostUser | None = None

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = path if path.startswith("http") else f"{self.api_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ForgeError(f"{method} {url} failed: {e}") from e
        return response

    def _get_all(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """GET a paginated collection, following Link headers."""
        results: list[dict[str, Any]] = []
        params = {"per_page": 100, **(params or {})}
        response = self._request("GET", path, params=params)
        results.extend(response.json())
        while "next" in response.links:
            response = self._request("GET", response.links["next"]["url"])
            results.extend(response.json())
        return results

    def current_user(self) -> HostUser:
        if self._current_user is None:
            self._current_user = _user(self._request("GET", "/user").json())
        return self._current_user

    def _pull_request(self, repository: str, data: dict[str, Any]) -> PullRequest:
        return PullRequest(
            repository=repository,
            id=str(data["number"]),
            title=data["title"],
            body=data.get("body") or "",
            author=_user(data["user"]),
            state=PullRequestState.OPEN if data["state"] == "open" else PullRequestState.CLOSED,
            labels=[label["name"] for label in data.get("labels", [])],
            head_hash=data["head"]["sha"],
            source_ref=f"refs/pull/{data['number']}/head",
            target_ref=data["base"]["ref"],
            web_url=data["html_url"],
            created_at=_parse_time(data["created_at"]),
            updated_at=_parse_time(data["updated_at"]),
        )

    def pull_requests(self, repository: str) -> list[PullRequest]:
        response = self._request(
            "GET",
            f"/repos/{repository}/pulls",
            params={"state": "all", "sort": "updated", "direction": "desc", "per_page": 50},
        )
        return [self._pull_request(repository, data) for data in response.json()]

    def pull_request(self, repository: str, pr_id: str) -> PullRequest:
        data = self._request("GET", f"/repos/{repository}/pulls/{pr_id}").json()
        return self._pull_request(repository, data)

    def _comment(self, data: dict[str, Any]) -> Comment:
        return Comment(
            id=str(data["id"]),
            author=_user(data["user"]),
            body=data.get("body") or "",
            created_at=_parse_time(data["created_at"]),
            updated_at=_parse_time(data.get("updated_at")),
        )

    def comments(self, pr: PullRequest) -> list[Comment]:
        return [self._comment(data) for data in self._get_all(f"/repos/{pr.repository}/issues/{pr.id}/comments")]

    def reviews(self, pr: PullRequest) -> list[Review]:
        reviews = []
        for data in self._get_all(f"/repos/{pr.repository}/pulls/{pr.id}/reviews"):
            if data.get("state") == "PENDING":
                continue
            reviews.append(
                Review(
                    id=str(data["id"]),
                    reviewer=_user(data["user"]),
                    body=data.get("body") or "",
                    verdict=_VERDICTS.get(data.get("state"), Verdict.NONE),
                    hash=data.get("commit_id", ""),
                    created_at=_parse_time(data.get("submitted_at")),
                )
            )
        return reviews

    def review_comments(self, pr: PullRequest) -> list[ReviewComment]:
        return [
            ReviewComment(
                id=str(data["id"]),
                author=_user(data["user"]),
                body=data.get("body") or "",
                path=data["path"],
                line=data.get("line") or data.get("original_line") or 0,
                hash=data.get("commit_id", ""),
                created_at=_parse_time(data["created_at"]),
            )
            for data in self._get_all(f"/repos/{pr.repository}/pulls/{pr.id}/comments")
        ]

    def add_comment(self, pr: PullRequest, body: str) -> Comment:
        logger.debug(f"Adding comment to {pr}")
        data = self._request("POST", f"/repos/{pr.repository}/issues/{pr.id}/comments", json={"body": body}).json()
        return self._comment(data)

    def update_comment(self, pr: PullRequest, comment_id: str, body: str) -> Comment:
        logger.debug(f"Updating comment {comment_id} on {pr}")
        data = self._request(
            "PATCH", f"/repos/{pr.repository}/issues/comments/{comment_id}", json={"body": body}
        ).json()
        return self._comment(data)

    def set_state(self, pr: PullRequest, state: PullRequestState) -> None:
        self._request("PATCH", f"/repos/{pr.repository}/pulls/{pr.id}", json={"state": state.value})

    def add_label(self, pr: PullRequest, label: str) -> None:
        self._request("POST", f"/repos/{pr.repository}/issues/{pr.id}/labels", json={"labels": [label]})

    def remove_label(self, pr: PullRequest, label: str) -> None:
        try:
            self._request("DELETE", f"/repos/{pr.repository}/issues/{pr.id}/labels/{label}")
        except ForgeError as e:
            # Removing a label that is not set is not an error for callers
            logger.debug(f"Could not remove label {label} from {pr}: {e}")

    def branches(self, repository: str) -> list[Branch]:
        return [
            Branch(name=data["name"], hash=data["commit"]["sha"])
            for data in self._get_all(f"/repos/{repository}/branches")
        ]

    def _commit_comment(self, data: dict[str, Any]) -> CommitComment:
        return CommitComment(
            id=str(data["id"]),
            commit=data["commit_id"],
            author=_user(data["user"]),
            body=data.get("body") or "",
            created_at=_parse_time(data["created_at"]),
        )

    def recent_commit_comments(self, repository: str) -> list[CommitComment]:
        response = self._request("GET", f"/repos/{repository}/comments", params={"per_page": 100})
        return [self._commit_comment(data) for data in response.json()]

    def add_commit_comment(self, repository: str, commit: str, body: str) -> CommitComment:
        data = self._request("POST", f"/repos/{repository}/commits/{commit}/comments", json={"body": body}).json()
        return self._commit_comment(data)

    def repository_url(self, repository: str) -> str:
        return self.clone_url.format(repository=repository)

    def files_url(self, pr: PullRequest, commit: str) -> str:
        return f"{self.web_url}/{pr.repository}/pull/{pr.id}/files/{commit}"

    def compare_url(self, repository: str, base: str, head: str) -> str:
        return f"{self.web_url}/{repository}/compare/{base}...{head}"
