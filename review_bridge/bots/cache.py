"""Tracks which pull requests changed since they were last handled."""

from datetime import datetime, timezone

from ..models import PullRequest


class PullRequestUpdateCache:
    """Remembers the last seen update time of each pull request.

    Lives for the lifetime of the process only; after a restart every pull
    request is handled once more, which the archive and command handling
    tolerate because they are idempotent.
    """

    def __init__(self):
        self._seen: dict[tuple[str, str], datetime] = {}
        self._retry_at: dict[tuple[str, str], datetime] = {}

    def needs_update(self, pr: PullRequest, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        retry_at = self._retry_at.get(pr.key)
        if retry_at is not None and retry_at <= now:
            del self._retry_at[pr.key]
            self._seen[pr.key] = pr.updated_at
            return True

        if self._seen.get(pr.key) == pr.updated_at:
            return False
        self._seen[pr.key] = pr.updated_at
        return True

    def invalidate(self, pr: PullRequest) -> None:
        """Forget a pull request so the next poll handles it again."""
        self._seen.pop(pr.key, None)

    def retry_at(self, pr: PullRequest, when: datetime) -> None:
        """Handle a pull request again at ``when`` even if it did not change."""
        current = self._retry_at.get(pr.key)
        if current is None or when < current:
            self._retry_at[pr.key] = when
