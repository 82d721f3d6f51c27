"""Project roles of forge users."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .config import CensusConfig
from .models import EmailIdentity, HostUser


_ROLE_RANK = {"author": 1, "committer": 2, "reviewer": 3, "lead": 4}


@dataclass
class Contributor:
    """A project member known to the census."""

    username: str
    full_name: str | None = None


class Census(ABC):
    """Lookup of project membership and roles."""

    domain: str
    namespace: str

    @abstractmethod
    def contributor(self, user: HostUser) -> Contributor | None:
        """Return the project member mapped to a forge account, if any."""

    @abstractmethod
    def is_lead(self, username: str) -> bool: ...

    @abstractmethod
    def is_reviewer(self, username: str) -> bool: ...

    @abstractmethod
    def is_committer(self, username: str) -> bool: ...

    @abstractmethod
    def is_author(self, username: str) -> bool: ...


class StaticCensus(Census):
    """Census backed by the contributor list in the configuration.

    Roles are cumulative: a lead is also a reviewer, committer and author.
    """

    def __init__(self, domain: str, namespace: str, members: dict[str, tuple[Contributor, str]]):
        """Initialize the census.

        Args:
            domain: Mail domain for contributor addresses.
            namespace: Name of the forge account namespace.
            members: Mapping of forge user id to (contributor, role).
        """
        self.domain = domain
        self.namespace = namespace
        self._members = members
        self._roles = {contributor.username: role for contributor, role in members.values()}

    @classmethod
    def from_config(cls, config: CensusConfig) -> "StaticCensus":
        members = {
            entry.id: (Contributor(entry.username, entry.full_name), entry.role) for entry in config.contributors
        }
        return cls(config.domain, config.namespace, members)

    def contributor(self, user: HostUser) -> Contributor | None:
        member = self._members.get(user.id)
        return member[0] if member else None

    def _has_role(self, username: str, role: str) -> bool:
        actual = self._roles.get(username)
        return actual is not None and _ROLE_RANK[actual] >= _ROLE_RANK[role]

    def is_lead(self, username: str) -> bool:
        return self._has_role(username, "lead")

    def is_reviewer(self, username: str) -> bool:
        return self._has_role(username, "reviewer")

    def is_committer(self, username: str) -> bool:
        return self._has_role(username, "committer")

    def is_author(self, username: str) -> bool:
        return self._has_role(username, "author")


def may_commit(census: Census, user: HostUser) -> bool:
    """Whether a forge user has commit rights in the project."""
    contributor = census.contributor(user)
    if contributor is None:
        return False
    return census.is_committer(contributor.username)


def user_identity(census: Census, user: HostUser) -> EmailIdentity:
    """Name and address of a forge user, in the project's mail domain."""
    contributor = census.contributor(user)
    if contributor is None:
        return EmailIdentity(
            user.full_name or user.username,
            f"{census.namespace}+{user.id}+{user.username}@{census.domain}",
        )
    return EmailIdentity(
        contributor.full_name or user.full_name or contributor.username,
        f"{contributor.username}@{census.domain}",
    )


def project_username(census: Census, user: HostUser) -> str:
    contributor = census.contributor(user)
    if contributor is None:
        return f"{user.username}@{census.namespace}"
    return contributor.username


def author_role(census: Census, user: HostUser) -> str:
    """Human readable role of a forge user, used in mail signatures."""
    contributor = census.contributor(user)
    if contributor is None:
        return "no known username"
    if census.is_lead(contributor.username):
        return "Lead"
    if census.is_reviewer(contributor.username):
        return "Reviewer"
    if census.is_committer(contributor.username):
        return "Committer"
    if census.is_author(contributor.username):
        return "Author"
    return "no project role"
