"""Configuration loading and validation for Review Bridge."""

import os
from pathlib import Path
import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator
import yaml

from .models import EmailIdentity, ListRule


class ForgeConfig(BaseModel):
    """Forge (code hosting) connection configuration."""

    api_url: str = "https://api.github.com"
    web_url: str = "https://github.com"
    token: Optional[str] = None
    clone_url: str = "https://github.com/{repository}.git"

    @field_validator("api_url", "web_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("token")
    @classmethod
    def resolve_env_var(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _resolve_env_var(v)

    @field_validator("clone_url")
    @classmethod
    def validate_clone_url(cls, v: str) -> str:
        if "{repository}" not in v:
            raise ValueError("clone_url must contain a {repository} placeholder")
        return v

    def repository_url(self, repository: str) -> str:
        return self.clone_url.format(repository=repository)


class BotConfig(BaseModel):
    """Identity used for commits, mails and rebases."""

    name: str = "Review Bridge"
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must be an address")
        return v

    @property
    def identity(self) -> EmailIdentity:
        return EmailIdentity(self.name, self.email)


class ContributorConfig(BaseModel):
    """A census entry mapping a forge account to a project role."""

    id: str
    username: str
    full_name: Optional[str] = None
    role: str = "author"

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        valid_roles = ["lead", "reviewer", "committer", "author"]
        v = v.lower()
        if v not in valid_roles:
            raise ValueError(f"Role must be one of: {valid_roles}")
        return v


class CensusConfig(BaseModel):
    """Census (project roles) configuration."""

    domain: str = "openjdk.org"
    namespace: str = "github"
    contributors: list[ContributorConfig] = Field(default_factory=list)


class ArchiveConfig(BaseModel):
    """Shared git repository holding the mbox archive."""

    url: str
    ref: str = "master"


class ListConfig(BaseModel):
    """A mailing list and the labels that route a PR to it."""

    address: str
    labels: list[str] = Field(default_factory=list)

    def to_rule(self) -> ListRule:
        return ListRule(address=self.address, labels=set(self.labels))


class SmtpConfig(BaseModel):
    """SMTP relay used to deliver archived mails to the real lists."""

    host: str = "localhost"
    port: int = 25


class MailingListBridgeConfig(BaseModel):
    """Settings for mirroring pull request activity to mailing lists."""

    repositories: list[str] = Field(default_factory=list)
    lists: list[ListConfig] = Field(default_factory=list)
    ready_labels: list[str] = Field(default_factory=list)
    ready_comments: dict[str, str] = Field(default_factory=dict)
    ignored_users: list[str] = Field(default_factory=list)
    ignored_comments: list[str] = Field(default_factory=list)
    headers: dict[str, str] = Field(default_factory=dict)
    cooldown_seconds: int = 0
    repo_in_subject: bool = False
    branch_in_subject: str = "a^"  # Never matches
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)

    @field_validator("ready_comments")
    @classmethod
    def validate_ready_comments(cls, v: dict[str, str]) -> dict[str, str]:
        for pattern in v.values():
            _validate_regex(pattern)
        return v

    @field_validator("ignored_comments")
    @classmethod
    def validate_ignored_comments(cls, v: list[str]) -> list[str]:
        for pattern in v:
            _validate_regex(pattern)
        return v

    @field_validator("branch_in_subject")
    @classmethod
    def validate_branch_pattern(cls, v: str) -> str:
        return _validate_regex(v)

    def list_rules(self) -> list[ListRule]:
        return [entry.to_rule() for entry in self.lists]

    def compiled_ready_comments(self) -> dict[str, re.Pattern]:
        return {user: re.compile(pattern) for user, pattern in self.ready_comments.items()}

    def compiled_ignored_comments(self) -> list[re.Pattern]:
        return [re.compile(pattern) for pattern in self.ignored_comments]


class PullRequestBotConfig(BaseModel):
    """Settings for PR commands (integrate, sponsor) and commit comments."""

    repositories: list[str] = Field(default_factory=list)
    min_reviewers: int = 1


class PollingConfig(BaseModel):
    """Polling configuration."""

    interval_seconds: int = 60
    workers: int = 4


class ScratchConfig(BaseModel):
    """Where work items materialize their private clones."""

    path: Optional[str] = None

    @property
    def resolved_path(self) -> Optional[Path]:
        if self.path:
            return Path(self.path).expanduser()
        return None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[str] = "~/.review_bridge/review_bridge.log"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Level must be one of: {valid_levels}")
        return v

    @property
    def resolved_file(self) -> Optional[Path]:
        if self.file:
            return Path(self.file).expanduser()
        return None


class Config(BaseModel):
    """Main configuration model."""

    forge: ForgeConfig = Field(default_factory=ForgeConfig)
    bot: BotConfig
    census: CensusConfig = Field(default_factory=CensusConfig)
    archive: Optional[ArchiveConfig] = None
    mlbridge: MailingListBridgeConfig = Field(default_factory=MailingListBridgeConfig)
    pr: PullRequestBotConfig = Field(default_factory=PullRequestBotConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    scratch: ScratchConfig = Field(default_factory=ScratchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _validate_regex(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e
    return pattern


def _resolve_env_var(value: str) -> str:
    """Resolve environment variable references in config values.

    Supports ${VAR_NAME} syntax.
    """
    pattern = r"\$\{([^}]+)\}"
    match = re.match(pattern, value)
    if match:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable {var_name} not set")
        return env_value
    return value


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, searches in default locations.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file not found.
        ValueError: If config validation fails.
    """
    if config_path is None:
        search_paths = [
            Path.cwd() / "config.yaml",
            Path.home() / ".review_bridge" / "config.yaml",
            Path("/etc/review_bridge/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break
        else:
            raise FileNotFoundError(f"Config file not found. Searched: {[str(p) for p in search_paths]}")

    config_path = Path(config_path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw_config = yaml.safe_load(f)

    return Config.model_validate(raw_config)


def ensure_directories(config: Config) -> None:
    """Ensure required directories exist."""
    if config.logging.resolved_file:
        config.logging.resolved_file.parent.mkdir(parents=True, exist_ok=True)

    if config.scratch.resolved_path:
        config.scratch.resolved_path.mkdir(parents=True, exist_ok=True)


# Global config instance (set by CLI)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance."""
    if _config is None:
        raise RuntimeError("Config not loaded. Call load_config() first.")
    return _config


def set_config(config: Config) -> None:
    """Set the global config instance."""
    global _config
    _config = config
