"""Shared test fixtures for Review Bridge."""

from collections.abc import Generator
from pathlib import Path

from click.testing import CliRunner
from git import Repo
import pytest

from review_bridge.census import StaticCensus

from .mocks import MockForgeClient, RecordingMailingList, make_census
from .mocks.git import commit_file


# Path to test data directory
TEST_DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git a fixed identity so commits work without a user config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def forge() -> MockForgeClient:
    """Create an empty in-memory forge."""
    return MockForgeClient()


@pytest.fixture
def census() -> StaticCensus:
    """Census with one contributor per role."""
    return make_census()


@pytest.fixture
def mailing_list() -> RecordingMailingList:
    """Mailing list that records relayed mails."""
    return RecordingMailingList()


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Generator[tuple[Path, Repo], None, None]:
    """Create a temporary git repository for testing.

    Yields:
        Tuple of (repo_path, Repo instance).
    """
    repo_path = tmp_path / "test_repo"
    repo_path.mkdir()

    # Initialize repo
    repo = Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial file and commit
    commit_file(repo, "README.md", "# Test Repository\n\nThis is a test.\n", "Initial commit")

    yield repo_path, repo

    # Cleanup is handled by tmp_path fixture


@pytest.fixture
def bare_remote(tmp_path: Path, temp_git_repo: tuple[Path, Repo]) -> tuple[Path, Repo]:
    """A bare repository whose master branch holds the initial commit of temp_git_repo.

    Returns:
        Tuple of (bare repo path, working Repo that can push to it).
    """
    _, work = temp_git_repo
    remote_path = tmp_path / "remote.git"
    Repo.init(remote_path, bare=True)
    work.git.push(str(remote_path), "HEAD:refs/heads/master")
    return remote_path, work


@pytest.fixture
def empty_remote(tmp_path: Path) -> Path:
    """A bare repository without any branch."""
    remote_path = tmp_path / "archive.git"
    Repo.init(remote_path, bare=True)
    return remote_path


@pytest.fixture
def valid_config_path() -> Path:
    """Path to valid test config."""
    return TEST_DATA_DIR / "config_valid.yaml"


@pytest.fixture
def invalid_config_path() -> Path:
    """Path to invalid test config."""
    return TEST_DATA_DIR / "config_invalid.yaml"


@pytest.fixture
def env_config_path() -> Path:
    """Path to config with environment variable references."""
    return TEST_DATA_DIR / "config_with_env.yaml"


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary valid config file.

    Returns:
        Path to the config file.
    """
    config_content = (TEST_DATA_DIR / "config_valid.yaml").read_text()

    # Update paths to use tmp_path
    config_content = config_content.replace("/tmp/test-scratch", str(tmp_path / "scratch"))
    config_content = config_content.replace("/tmp/test.log", str(tmp_path / "test.log"))

    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_content)

    return config_path


@pytest.fixture
def env_vars_for_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables needed for config_with_env.yaml."""
    monkeypatch.setenv("TEST_FORGE_TOKEN", "env-forge-token-value")


@pytest.fixture
def isolated_filesystem(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Change to an isolated temporary directory.

    Returns:
        Path to the temporary directory.
    """
    monkeypatch.chdir(tmp_path)
    return tmp_path


# Markers for slow tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
