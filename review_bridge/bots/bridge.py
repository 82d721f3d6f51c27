"""Bot mirroring pull request activity to mailing lists."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
import re

from ..archive import SmtpMailingList
from ..census import Census
from ..classifier import CommentClassifier
from ..config import Config
from ..forge import ForgeClient
from ..models import EmailIdentity, HostUser, ListRule
from ..readiness import ReadinessGate
from ..workitem import Bot, WorkItem
from .archive import ArchiveWorkItem
from .cache import PullRequestUpdateCache


logger = logging.getLogger(__name__)


@dataclass
class BridgeSettings:
    """How one code repository is bridged to its lists and archive."""

    repository: str
    archive_url: str
    archive_ref: str
    identity: EmailIdentity
    lists: list[ListRule]
    ready_labels: set[str] = field(default_factory=set)
    ready_comments: dict[str, re.Pattern] = field(default_factory=dict)
    ignored_users: set[str] = field(default_factory=set)
    ignored_comments: list[re.Pattern] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    cooldown: timedelta = timedelta(0)
    repo_in_subject: bool = False
    branch_in_subject: re.Pattern = field(default_factory=lambda: re.compile("a^"))


class MailingListBridgeBot(Bot):
    """Emits one archive work item per pull request that changed."""

    def __init__(
        self,
        client: ForgeClient,
        census: Census,
        settings: BridgeSettings,
        mailing_list,
        retry_listener: Callable[[datetime], None] | None = None,
    ):
        """Initialize the bot.

        Args:
            client: Forge client.
            census: Project roles, used for mail addresses and signatures.
            settings: Repository, archive and list settings.
            mailing_list: Object with a ``post(message)`` method delivering to the lists.
            retry_listener: Told when a deferred pull request should be polled again.
        """
        self.client = client
        self.census = census
        self.settings = settings
        self.mailing_list = mailing_list
        self.retry_listener = retry_listener
        self.update_cache = PullRequestUpdateCache()
        self.readiness = ReadinessGate(settings.ready_labels, settings.ready_comments)
        self._classifier: CommentClassifier | None = None

    def __str__(self) -> str:
        return f"MailingListBridgeBot@{self.settings.repository}"

    @classmethod
    def from_config(
        cls,
        config: Config,
        repository: str,
        client: ForgeClient,
        census: Census,
        retry_listener: Callable[[datetime], None] | None = None,
    ) -> "MailingListBridgeBot":
        if config.archive is None:
            raise ValueError("An archive repository must be configured to bridge mailing lists")
        mlbridge = config.mlbridge
        settings = BridgeSettings(
            repository=repository,
            archive_url=config.archive.url,
            archive_ref=config.archive.ref,
            identity=config.bot.identity,
            lists=mlbridge.list_rules(),
            ready_labels=set(mlbridge.ready_labels),
            ready_comments=mlbridge.compiled_ready_comments(),
            ignored_users=set(mlbridge.ignored_users),
            ignored_comments=mlbridge.compiled_ignored_comments(),
            headers=dict(mlbridge.headers),
            cooldown=timedelta(seconds=mlbridge.cooldown_seconds),
            repo_in_subject=mlbridge.repo_in_subject,
            branch_in_subject=re.compile(mlbridge.branch_in_subject),
        )
        mailing_list = SmtpMailingList(mlbridge.smtp.host, mlbridge.smtp.port)
        return cls(client, census, settings, mailing_list, retry_listener)

    @property
    def bot_user(self) -> HostUser:
        return self.client.current_user()

    @property
    def classifier(self) -> CommentClassifier:
        if self._classifier is None:
            self._classifier = CommentClassifier(
                self.bot_user,
                self.settings.ignored_users,
                self.settings.ignored_comments,
            )
        return self._classifier

    def get_periodic_items(self) -> list[WorkItem]:
        items: list[WorkItem] = []

        for pr in self.client.pull_requests(self.settings.repository):
            if not self.update_cache.needs_update(pr):
                continue

            def on_error(error: Exception, pr=pr) -> None:
                self.update_cache.invalidate(pr)

            def on_retry(when: datetime, pr=pr) -> None:
                self.update_cache.retry_at(pr, when)
                if self.retry_listener is not None:
                    self.retry_listener(when)

            items.append(ArchiveWorkItem(pr, self, on_error, on_retry))

        logger.debug(f"{self}: {len(items)} pull requests to archive")
        return items
