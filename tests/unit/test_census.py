"""Tests for census lookups."""

from review_bridge.census import StaticCensus, author_role, may_commit, project_username, user_identity
from review_bridge.config import CensusConfig
from review_bridge.models import HostUser

from ..mocks.census import AUTHOR, COMMITTER, LEAD, OUTSIDER, REVIEWER


class TestRoles:
    """Roles are cumulative."""

    def test_lead_has_every_role(self, census: StaticCensus):
        assert census.is_lead("duke")
        assert census.is_reviewer("duke")
        assert census.is_committer("duke")
        assert census.is_author("duke")

    def test_author_only(self, census: StaticCensus):
        assert census.is_author("bob")
        assert not census.is_committer("bob")
        assert not census.is_reviewer("bob")

    def test_unknown_username(self, census: StaticCensus):
        assert not census.is_author("nobody")

    def test_may_commit(self, census: StaticCensus):
        assert may_commit(census, LEAD)
        assert may_commit(census, COMMITTER)
        assert not may_commit(census, AUTHOR)
        assert not may_commit(census, OUTSIDER)

    def test_author_role(self, census: StaticCensus):
        assert author_role(census, LEAD) == "Lead"
        assert author_role(census, REVIEWER) == "Reviewer"
        assert author_role(census, COMMITTER) == "Committer"
        assert author_role(census, AUTHOR) == "Author"
        assert author_role(census, OUTSIDER) == "no known username"


class TestIdentities:
    """Tests for mapping forge users to project identities."""

    def test_known_contributor(self, census: StaticCensus):
        identity = user_identity(census, REVIEWER)

        assert identity.name == "Alice Reviewer"
        assert identity.address == "alice@openjdk.example"
        assert project_username(census, REVIEWER) == "alice"

    def test_unknown_user(self, census: StaticCensus):
        identity = user_identity(census, OUTSIDER)

        assert identity.name == "Con Tributor"
        assert identity.address == "github+100+contributor@openjdk.example"
        assert project_username(census, OUTSIDER) == "contributor@github"

    def test_unknown_user_without_full_name(self, census: StaticCensus):
        user = HostUser(id="7", username="anon")

        assert user_identity(census, user).name == "anon"


class TestFromConfig:
    def test_builds_members(self):
        config = CensusConfig(
            domain="openjdk.example",
            namespace="github",
            contributors=[
                {"id": "5", "username": "erin", "full_name": "Erin", "role": "committer"},
            ],
        )

        census = StaticCensus.from_config(config)

        assert census.contributor(HostUser(id="5", username="erin-gh")).username == "erin"
        assert census.is_committer("erin")
        assert census.contributor(HostUser(id="6", username="x")) is None
