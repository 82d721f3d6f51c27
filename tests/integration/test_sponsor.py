"""Integration tests for integrating pull requests into a real repository."""

from pathlib import Path

from git import Repo
import pytest

from review_bridge.bots import CommandWorkItem, PullRequestBot
from review_bridge.checks import default_checks
from review_bridge.git import LocalRepository
from review_bridge.models import EmailIdentity, PullRequestState, Review, Verdict

from ..mocks import MockForgeClient, make_census, make_pr
from ..mocks.census import AUTHOR, COMMITTER, REVIEWER
from ..mocks.git import commit_file


pytestmark = pytest.mark.integration

IDENTITY = EmailIdentity("Bridge", "bridge@openjdk.example")


class Project:
    """A bare remote with a master branch, plus a working copy to prepare changes."""

    def __init__(self, remote: Path, work: Repo, tmp_path: Path):
        self.remote = remote
        self.work = work
        self.tmp_path = tmp_path
        self.forge = MockForgeClient(clone_urls={"example/project": str(remote)})
        self.bot = PullRequestBot(self.forge, make_census(), "example/project", IDENTITY, checks=default_checks(1))
        self.master = self.remote_head()
        self._runs = 0

    def remote_head(self, ref: str = "master") -> str:
        return Repo(str(self.remote)).commit(ref).hexsha

    def push_pr(self, base: str, files: dict[str, str], message: str = "Work in progress") -> str:
        """Publish a pull request branch on top of ``base`` as refs/pull/42/head."""
        self.work.git.checkout("-B", "feature", base)
        head = base
        for name, content in files.items():
            head = commit_file(self.work, name, content, message)
        self.work.git.push(str(self.remote), f"+{head}:refs/pull/42/head")
        return head

    def advance_master(self, files: dict[str, str]) -> str:
        self.work.git.checkout("-B", "upstream", self.remote_head())
        head = self.remote_head()
        for name, content in files.items():
            head = commit_file(self.work, name, content, f"Change {name}")
        self.work.git.push(str(self.remote), f"{head}:refs/heads/master")
        return head

    def open_pr(self, head: str, approved: bool = True):
        pr = self.forge.add_pr(make_pr(author=AUTHOR, head_hash=head))
        if approved:
            self.forge.review_as(pr, Review("r1", REVIEWER, "", Verdict.APPROVED, head, pr.created_at))
        return pr

    def run_commands(self, pr) -> None:
        self._runs += 1
        scratch = self.tmp_path / f"scratch{self._runs}"
        scratch.mkdir()
        CommandWorkItem(pr, self.bot).run(scratch)

    def integrate_and_sponsor(self, pr) -> str:
        self.forge.comment_as(pr, AUTHOR, "/integrate")
        self.run_commands(pr)
        self.forge.comment_as(pr, COMMITTER, "/sponsor", minutes=5)
        self.run_commands(pr)
        return self.forge.added_comments[-1].body


@pytest.fixture
def project(bare_remote: tuple[Path, Repo], tmp_path: Path) -> Project:
    remote, work = bare_remote
    return Project(remote, work, tmp_path)


class TestSponsoredIntegration:
    """End-to-end sponsor flow."""

    def test_sponsored_change_is_pushed(self, project: Project):
        head = project.push_pr(project.master, {"src/feature.c": "int feature;\n"})
        pr = project.open_pr(head)

        reply = project.integrate_and_sponsor(pr)

        new_master = project.remote_head()
        assert f"Pushed as commit {new_master}." in reply
        commit = Repo(str(project.remote)).commit(new_master)
        assert [parent.hexsha for parent in commit.parents] == [project.master]
        assert commit.message == "8123456: Fix the frobnicator\n\nReviewed-by: alice\n"
        assert commit.author.email == "bob@openjdk.example"
        assert commit.committer.email == "carol@openjdk.example"
        assert project.forge.state_changes == [("42", PullRequestState.CLOSED)]
        assert "integrated" in pr.labels
        assert "sponsor" not in pr.labels

    def test_squashes_multiple_commits(self, project: Project):
        head = project.push_pr(project.master, {"a.txt": "a\n", "b.txt": "b\n"})
        pr = project.open_pr(head)

        project.integrate_and_sponsor(pr)

        commit = Repo(str(project.remote)).commit("master")
        assert [parent.hexsha for parent in commit.parents] == [project.master]
        assert sorted(blob.path for blob in commit.tree.traverse() if blob.type == "blob") == [
            "README.md",
            "a.txt",
            "b.txt",
        ]

    def test_rebased_onto_new_target(self, project: Project):
        head = project.push_pr(project.master, {"feature.txt": "feature\n"})
        pr = project.open_pr(head)
        upstream = project.advance_master({"other.txt": "other\n"})

        reply = project.integrate_and_sponsor(pr)

        assert "Your changes were automatically rebased without conflicts." in reply
        commit = Repo(str(project.remote)).commit("master")
        assert [parent.hexsha for parent in commit.parents] == [upstream]
        assert commit.committer.email == "carol@openjdk.example"

    def test_conflict_is_reported(self, project: Project):
        head = project.push_pr(project.master, {"README.md": "mine\n"})
        pr = project.open_pr(head)
        upstream = project.advance_master({"README.md": "theirs\n"})

        reply = project.integrate_and_sponsor(pr)

        assert "It was not possible to rebase your changes automatically." in reply
        assert project.remote_head() == upstream
        assert project.forge.state_changes == []

    def test_rejected_push_is_rebased_and_retried(self, project: Project, monkeypatch: pytest.MonkeyPatch):
        head = project.push_pr(project.master, {"feature.txt": "feature\n"})
        pr = project.open_pr(head)
        push = LocalRepository.push
        upstream = []

        def push_after_concurrent_writer(self, commit, url, ref):
            if not upstream:
                upstream.append(project.advance_master({"other.txt": "other\n"}))
            push(self, commit, url, ref)

        monkeypatch.setattr(LocalRepository, "push", push_after_concurrent_writer)

        reply = project.integrate_and_sponsor(pr)

        new_master = project.remote_head()
        assert f"Pushed as commit {new_master}." in reply
        commit = Repo(str(project.remote)).commit(new_master)
        assert [parent.hexsha for parent in commit.parents] == upstream
        assert sorted(blob.path for blob in commit.tree.traverse() if blob.type == "blob") == [
            "README.md",
            "feature.txt",
            "other.txt",
        ]
        assert commit.author.email == "bob@openjdk.example"
        assert project.forge.state_changes == [("42", PullRequestState.CLOSED)]

    def test_failed_checks_block_push(self, project: Project):
        head = project.push_pr(project.master, {"src/bad.c": "int x; \n"})
        pr = project.open_pr(head, approved=False)

        reply = project.integrate_and_sponsor(pr)

        assert "failed the final checks:" in reply
        assert " * src/bad.c: trailing whitespace" in reply
        assert " * Too few reviewers with at least role reviewer found (have 0, need 1)" in reply
        assert project.remote_head() == project.master

    def test_no_changes_is_not_pushed(self, project: Project):
        # The pull request head is the current target head
        project.work.git.push(str(project.remote), f"+{project.master}:refs/pull/42/head")
        pr = project.open_pr(project.master)

        reply = project.integrate_and_sponsor(pr)

        assert "did not result in any changes" in reply
        assert "Pushed as commit" not in reply
        assert project.remote_head() == project.master
        assert project.forge.state_changes == []


class TestDirectIntegration:
    """Committers integrate their own changes without a sponsor."""

    def test_committer_integrates(self, project: Project):
        head = project.push_pr(project.master, {"feature.txt": "feature\n"})
        pr = project.forge.add_pr(make_pr(author=COMMITTER, head_hash=head))
        project.forge.review_as(pr, Review("r1", REVIEWER, "", Verdict.APPROVED, head, pr.created_at))
        project.forge.comment_as(pr, COMMITTER, "/integrate")

        project.run_commands(pr)

        commit = Repo(str(project.remote)).commit("master")
        assert commit.author.email == "carol@openjdk.example"
        assert commit.committer.email == "carol@openjdk.example"
        assert f"Pushed as commit {commit.hexsha}." in project.forge.added_comments[-1].body
