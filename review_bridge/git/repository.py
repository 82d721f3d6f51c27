"""Local git working copies materialized into scratch storage."""

import logging
from pathlib import Path

from git import Actor, Commit, GitCommandError, Repo

from ..models import EmailIdentity


logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Error in a local git operation."""

    pass


def _actor(identity: EmailIdentity) -> Actor:
    return Actor(identity.name, identity.address)


def _full_ref(ref: str) -> str:
    return ref if ref.startswith("refs/") else f"refs/heads/{ref}"


class LocalRepository:
    """A private working copy used by a single work item execution."""

    def __init__(self, repo: Repo):
        self.repo = repo

    @property
    def root(self) -> Path:
        return Path(self.repo.working_dir)

    @classmethod
    def init(cls, path: Path) -> "LocalRepository":
        """Create an empty repository at ``path``."""
        path.mkdir(parents=True, exist_ok=True)
        try:
            return cls(Repo.init(path))
        except GitCommandError as e:
            raise RepositoryError(f"Failed to initialize repository at {path}: {e}") from e

    @classmethod
    def materialize(cls, path: Path, url: str, ref: str, local_branch: str = "work") -> "LocalRepository":
        """Create a fresh working copy of ``ref`` from ``url`` at ``path``.

        If the remote does not have the ref yet, the working copy is left on
        an unborn ``local_branch`` so the first commit creates it.

        Raises:
            RepositoryError: If the remote cannot be read.
        """
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Materializing {url} ({ref}) at {path}")

        try:
            repo = Repo.init(path)
            local = cls(repo)
            if repo.git.ls_remote(url, _full_ref(ref)).strip():
                head = local.fetch(url, ref)
                repo.git.checkout("-B", local_branch, head)
            else:
                logger.info(f"{url} has no {ref} yet, starting from an empty history")
                repo.git.symbolic_ref("HEAD", f"refs/heads/{local_branch}")
            return local
        except GitCommandError as e:
            raise RepositoryError(f"Failed to materialize {url} ({ref}): {e}") from e

    def head(self) -> str | None:
        """Current HEAD commit, or None on an unborn branch."""
        try:
            return self.repo.git.rev_parse("--verify", "-q", "HEAD")
        except GitCommandError:
            return None

    def resolve(self, rev: str) -> str:
        try:
            return self.repo.git.rev_parse("--verify", f"{rev}^{{commit}}")
        except GitCommandError as e:
            raise RepositoryError(f"Unknown revision {rev}: {e}") from e

    def fetch(self, url: str, ref: str) -> str:
        """Fetch a single ref and return the commit it points to."""
        try:
            self.repo.git.fetch(url, _full_ref(ref))
            return self.repo.git.rev_parse("FETCH_HEAD")
        except GitCommandError as e:
            raise RepositoryError(f"Failed to fetch {ref} from {url}: {e}") from e

    def add_all(self) -> None:
        try:
            self.repo.git.add("--all", ".")
        except GitCommandError as e:
            raise RepositoryError(f"Failed to stage changes: {e}") from e

    def commit(self, message: str, author: EmailIdentity, committer: EmailIdentity | None = None) -> str:
        """Commit the staged index and return the new commit hash."""
        commit = self.repo.index.commit(
            message,
            author=_actor(author),
            committer=_actor(committer or author),
        )
        logger.debug(f"Committed {commit.hexsha[:12]}: {message.splitlines()[0]}")
        return commit.hexsha

    def push(self, commit: str, url: str, ref: str) -> None:
        """Push a commit to a ref of a remote repository.

        Raises:
            RepositoryError: If the push is rejected or the remote is unreachable.
        """
        try:
            self.repo.git.push(url, f"{commit}:{_full_ref(ref)}")
        except GitCommandError as e:
            raise RepositoryError(f"Failed to push {commit[:12]} to {url} ({ref}): {e}") from e

    def rebase(self, onto: str, committer: EmailIdentity) -> str:
        """Rebase the current branch onto ``onto`` and return the new HEAD.

        A failed rebase is aborted before the error is raised, leaving the
        working copy as it was.
        """
        env = {
            "GIT_COMMITTER_NAME": committer.name,
            "GIT_COMMITTER_EMAIL": committer.address,
        }
        try:
            self.repo.git.rebase(onto, env=env)
        except GitCommandError as e:
            try:
                self.repo.git.rebase("--abort")
            except GitCommandError:
                logger.debug("No rebase in progress to abort")
            raise RepositoryError(f"Failed to rebase onto {onto[:12]}: {e}") from e
        return self.head()

    def checkout(self, branch: str, commit: str) -> None:
        """Point ``branch`` at ``commit`` and check it out."""
        try:
            self.repo.git.checkout("-B", branch, commit)
        except GitCommandError as e:
            raise RepositoryError(f"Failed to checkout {commit[:12]}: {e}") from e

    def contains(self, commit: str) -> bool:
        """Whether the commit object exists locally."""
        try:
            self.repo.git.cat_file("-e", f"{commit}^{{commit}}")
            return True
        except GitCommandError:
            return False

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        try:
            return self.repo.is_ancestor(ancestor, descendant)
        except GitCommandError as e:
            raise RepositoryError(f"Failed to compare {ancestor[:12]} and {descendant[:12]}: {e}") from e

    def merge_base(self, first: str, second: str) -> str:
        bases = self.repo.merge_base(first, second)
        if not bases:
            raise RepositoryError(f"No merge base between {first[:12]} and {second[:12]}")
        return bases[0].hexsha

    def squash(
        self,
        base: str,
        head: str,
        message: str,
        author: EmailIdentity,
        committer: EmailIdentity,
    ) -> str:
        """Create a single commit on ``base`` with the tree of ``head``.

        Returns ``base`` itself when ``head`` does not change any file.
        """
        base_commit = self.repo.commit(base)
        head_commit = self.repo.commit(head)
        if base_commit.tree.hexsha == head_commit.tree.hexsha:
            logger.info(f"{head[:12]} has the same content as {base[:12]}")
            return base

        commit = Commit.create_from_tree(
            self.repo,
            head_commit.tree,
            message,
            parent_commits=[base_commit],
            author=_actor(author),
            committer=_actor(committer),
        )
        return commit.hexsha

    def message(self, commit: str) -> str:
        return self.repo.commit(commit).message

    def added_lines(self, base: str, commit: str) -> dict[str, list[str]]:
        """Lines added between two commits, grouped by file path."""
        try:
            diff = self.repo.git.diff(base, commit, "--unified=0", "--no-color", "--no-ext-diff")
        except GitCommandError as e:
            raise RepositoryError(f"Failed to diff {base[:12]}..{commit[:12]}: {e}") from e

        added: dict[str, list[str]] = {}
        current: str | None = None
        for line in diff.splitlines():
            if line.startswith("+++ "):
                target = line[4:]
                current = target[2:] if target.startswith("b/") else None
            elif line.startswith("+") and current is not None:
                added.setdefault(current, []).append(line[1:])
        return added
