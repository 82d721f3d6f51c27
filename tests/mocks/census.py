"""Census fixtures for testing."""

from review_bridge.census import Contributor, StaticCensus
from review_bridge.models import HostUser


LEAD = HostUser(id="200", username="duke-gh", full_name="Duke")
REVIEWER = HostUser(id="201", username="alice-gh", full_name="Alice Reviewer")
COMMITTER = HostUser(id="202", username="carol-gh", full_name="Carol Committer")
AUTHOR = HostUser(id="203", username="bob-gh", full_name="Bob Author")
OUTSIDER = HostUser(id="100", username="contributor", full_name="Con Tributor")


def make_census(extra: dict[HostUser, tuple[str, str]] | None = None) -> StaticCensus:
    """Create a census with one contributor per role.

    Args:
        extra: Additional members, mapping forge user to (project username, role).
    """
    members = {
        LEAD.id: (Contributor("duke", "Duke"), "lead"),
        REVIEWER.id: (Contributor("alice", "Alice Reviewer"), "reviewer"),
        COMMITTER.id: (Contributor("carol", "Carol Committer"), "committer"),
        AUTHOR.id: (Contributor("bob", "Bob Author"), "author"),
    }
    for user, (username, role) in (extra or {}).items():
        members[user.id] = (Contributor(username, user.full_name), role)
    return StaticCensus("openjdk.example", "github", members)
