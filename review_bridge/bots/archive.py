"""Work item that mirrors one pull request into the mail archive."""

from collections.abc import Callable
from datetime import datetime
from email.message import EmailMessage
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ..archive import MboxArchive, MboxList, ReviewArchive, prepare_for_list
from ..census import author_role, project_username, user_identity
from ..git import LocalRepository, commit_and_publish
from ..models import EmailIdentity, HostUser, PullRequest
from ..webrev import ForgeWebrevGenerator, update_webrev_comment
from ..workitem import WorkItem


if TYPE_CHECKING:
    from .bridge import MailingListBridgeBot


logger = logging.getLogger(__name__)

ARCHIVE_BRANCH = "mlbridge_archive"


class ArchiveCorruptError(RuntimeError):
    """The archive holds more than one thread for a pull request."""


class ArchiveWorkItem(WorkItem):
    """Archives new activity of a pull request and relays it to the lists."""

    def __init__(
        self,
        pr: PullRequest,
        bot: "MailingListBridgeBot",
        exception_consumer: Callable[[Exception], None],
        retry_consumer: Callable[[datetime], None] | None = None,
    ):
        self.pr = pr
        self.bot = bot
        self.exception_consumer = exception_consumer
        self.retry_consumer = retry_consumer

    def __str__(self) -> str:
        return f"ArchiveWorkItem@{self.pr.repository}#{self.pr.id}"

    def concurrent_with(self, other: WorkItem) -> bool:
        if not isinstance(other, ArchiveWorkItem):
            return True
        return other.pr.key != self.pr.key

    def _parse_archive(self, archive_list: MboxList) -> list[EmailMessage]:
        conversations = archive_list.conversations()
        if not conversations:
            return []
        if len(conversations) == 1:
            return conversations[0].all_messages()
        raise ArchiveCorruptError(f"Found {len(conversations)} threads for {self.pr} in the archive")

    def _recipients(self) -> list[str]:
        labels = set(self.pr.labels)
        return [rule.address for rule in self.bot.settings.lists if rule.matches(labels)]

    def _author_address(self, user: HostUser) -> EmailIdentity:
        if user.username in self.bot.settings.ignored_users:
            return self.bot.settings.identity
        return user_identity(self.bot.census, user)

    def _subject_prefix(self) -> str:
        settings = self.bot.settings
        branch = self.pr.target_ref
        repo_name = Path(self.pr.repository).name
        use_branch = settings.branch_in_subject.fullmatch(branch) is not None
        use_repo = settings.repo_in_subject

        if not (use_branch or use_repo):
            return ""
        parts = []
        if use_repo:
            parts.append(repo_name)
        if use_branch:
            parts.append(branch)
        return f"[{':'.join(parts)}] "

    def run(self, scratch_path: Path) -> list[WorkItem]:
        settings = self.bot.settings
        client = self.bot.client

        path = scratch_path / "mlbridge"
        archive_repo = LocalRepository.materialize(path, settings.archive_url, settings.archive_ref, ARCHIVE_BRANCH)
        archive_list = MboxArchive(path / self.pr.repository).get_list(self.pr.id)
        sent_mails = self._parse_archive(archive_list)

        comments = client.comments(self.pr)
        if not sent_mails and not self.bot.readiness.is_ready(self.pr, comments):
            return []

        recipients = self._recipients()
        if not recipients:
            logger.debug(f"{self.pr} does not match any recipient list")
            return []

        classifier = self.bot.classifier
        archiver = ReviewArchive(self.pr, settings.identity)
        mirrored, _ = classifier.partition(comments)
        for comment in mirrored:
            archiver.add_comment(comment)
        for review in classifier.mirrored_reviews(client.reviews(self.pr)):
            archiver.add_review(review)
        for review_comment in classifier.mirrored_review_comments(client.review_comments(self.pr)):
            archiver.add_review_comment(review_comment)

        webrevs = ForgeWebrevGenerator(client)
        census = self.bot.census
        new_mails = archiver.generate_new_emails(
            sent_mails,
            cooldown=settings.cooldown,
            fetch_url=client.repository_url(self.pr.repository),
            webrev_generator=webrevs.generate,
            webrev_callback=lambda index, links: update_webrev_comment(
                client, self.pr, comments, self.bot.bot_user, index, links
            ),
            author_address=self._author_address,
            author_username=lambda user: project_username(census, user),
            author_role=lambda user: author_role(census, user),
            subject_prefix=self._subject_prefix(),
            retry_consumer=self.retry_consumer,
        )
        if not new_mails:
            return []

        for mail in new_mails:
            archive_list.post(mail)
        commit_and_publish(
            archive_repo,
            f"Adding comments for PR {self.pr.repository}/{self.pr.id}",
            settings.archive_url,
            settings.archive_ref,
            settings.identity,
        )

        for mail in new_mails:
            self.bot.mailing_list.post(prepare_for_list(mail, settings.headers, recipients))
        logger.info(f"{self.pr}: relayed {len(new_mails)} mails to {', '.join(recipients)}")
        return []

    def handle_runtime_exception(self, error: Exception) -> None:
        self.exception_consumer(error)
