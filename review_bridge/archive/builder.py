"""Builds the mails that mirror a pull request's activity."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from email.utils import format_datetime, formataddr
import logging
import re

from ..models import (
    Comment,
    EmailIdentity,
    HostUser,
    PullRequest,
    PullRequestState,
    Review,
    ReviewComment,
    Verdict,
    WebrevDescription,
)
from ..webrev import format_webrevs
from .mbox import message_id


logger = logging.getLogger(__name__)

HEAD_HASH_HEADER = "PR-Head-Hash"
ITEM_HEADER = "PR-Item"
TRACKING_HEADER_PREFIX = "PR-"

WebrevGenerator = Callable[[PullRequest, str, str, str | None], list[WebrevDescription]]
WebrevCallback = Callable[[int, list[WebrevDescription]], None]

_SEPARATOR = "\n\n-------------\n\n"
_CLOSED_ROOT_ITEM = "rfr:closed"


class ReviewArchive:
    """Collects mirrored activity and turns what is not archived yet into mails.

    Every mail gets a Message-Id derived from the pull request and the item
    it mirrors, so running the builder again over the same activity and the
    mails it already produced yields nothing new.
    """

    def __init__(self, pr: PullRequest, sender: EmailIdentity):
        self.pr = pr
        self.sender = sender
        self.comments: list[Comment] = []
        self.reviews: list[Review] = []
        self.review_comments: list[ReviewComment] = []
        self._host = sender.address.split("@", 1)[-1]
        self._slug = re.sub(r"[^A-Za-z0-9.-]", "-", f"{pr.repository}.{pr.id}".replace("/", "."))

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def add_review(self, review: Review) -> None:
        self.reviews.append(review)

    def add_review_comment(self, review_comment: ReviewComment) -> None:
        self.review_comments.append(review_comment)

    def _id(self, *parts: str) -> str:
        return f"<{'.'.join([self._slug, *parts])}@{self._host}>"

    @property
    def root_id(self) -> str:
        return self._id("rfr")

    def _email(
        self,
        msg_id: str,
        author: EmailIdentity,
        subject: str,
        body: str,
        date: datetime,
        item: str,
        in_reply_to: str | None = None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Message-Id"] = msg_id
        msg["From"] = formataddr((author.name, author.address))
        msg["Subject"] = subject
        msg["Date"] = format_datetime(date)
        if in_reply_to:
            msg["In-Reply-To"] = in_reply_to
            msg["References"] = in_reply_to
        msg[ITEM_HEADER] = item
        msg.set_content(body)
        return msg

    def _revision_body(self, webrevs: list[WebrevDescription], fetch_url: str) -> str:
        body = f"Commit: {self.pr.head_hash}\n"
        body += f"Webrev: {format_webrevs(webrevs)}\n"
        body += f"Fetch: git fetch {fetch_url} {self.pr.source_ref}:pull/{self.pr.id}\n"
        body += f"PR: {self.pr.web_url}"
        return body

    def generate_new_emails(
        self,
        sent_mails: list[EmailMessage],
        cooldown: timedelta,
        fetch_url: str,
        webrev_generator: WebrevGenerator,
        webrev_callback: WebrevCallback,
        author_address: Callable[[HostUser], EmailIdentity],
        author_username: Callable[[HostUser], str],
        author_role: Callable[[HostUser], str],
        subject_prefix: str = "",
        retry_consumer: Callable[[datetime], None] | None = None,
        now: datetime | None = None,
    ) -> list[EmailMessage]:
        """Create the mails for activity that is not archived yet.

        Args:
            sent_mails: Messages already in the archive thread, in order.
            cooldown: Activity younger than this is held back for a later run.
            fetch_url: Repository URL shown in fetch instructions.
            webrev_generator: Called as (pr, base, head, previous_head).
            webrev_callback: Called with (index, webrevs) for every new revision.
            author_address: Mail identity of a forge user.
            author_username: Project username of a forge user.
            author_role: Project role of a forge user.
            subject_prefix: Prefix for the subject of the first mail.
            retry_consumer: Told when held back activity becomes eligible.
            now: Current time, for tests.

        Returns:
            New mails, in the order they should be archived and sent.
        """
        now = now or datetime.now(timezone.utc)
        sent_ids = {message_id(m) for m in sent_mails}
        revisions = [str(m[HEAD_HASH_HEADER]).strip() for m in sent_mails if m[HEAD_HASH_HEADER] is not None]
        new_mails: list[EmailMessage] = []

        if sent_mails:
            root_subject = str(sent_mails[0]["Subject"])
        else:
            verb = "Integrated" if self.pr.state == PullRequestState.CLOSED else "RFR"
            root_subject = f"{subject_prefix}{verb}: {self.pr.title}"
        reply_subject = root_subject if root_subject.startswith("Re: ") else f"Re: {root_subject}"

        if self.pr.head_hash not in revisions:
            index = len(revisions)
            previous = revisions[-1] if revisions else None
            webrevs = webrev_generator(self.pr, self.pr.target_ref, self.pr.head_hash, previous)
            webrev_callback(index, webrevs)

            if index == 0 and self.root_id not in sent_ids:
                body = self.pr.body.strip() + _SEPARATOR + self._revision_body(webrevs, fetch_url)
                mail = self._email(
                    self.root_id,
                    author_address(self.pr.author),
                    root_subject,
                    body,
                    self.pr.created_at,
                    item=_CLOSED_ROOT_ITEM if self.pr.state == PullRequestState.CLOSED else "rfr",
                )
            else:
                body = (
                    f"{self.pr.author.full_name or self.pr.author.username} has updated the pull request "
                    f"with a new head commit.{_SEPARATOR}{self._revision_body(webrevs, fetch_url)}"
                )
                mail = self._email(
                    self._id("rev", self.pr.head_hash[:12]),
                    author_address(self.pr.author),
                    reply_subject,
                    body,
                    now,
                    item=f"revision:{index}",
                    in_reply_to=self.root_id,
                )
            mail[HEAD_HASH_HEADER] = self.pr.head_hash
            new_mails.append(mail)

        def eligible(created_at: datetime) -> bool:
            ready_at = created_at + cooldown
            if ready_at > now:
                logger.debug(f"Activity from {created_at.isoformat()} is still in cooldown")
                if retry_consumer is not None:
                    retry_consumer(ready_at)
                return False
            return True

        timeline: list[tuple[datetime, str, Comment | Review]] = [
            (c.created_at, "comment", c) for c in self.comments
        ] + [(r.created_at, "review", r) for r in self.reviews]
        timeline.sort(key=lambda entry: entry[0])

        for created_at, kind, item in timeline:
            msg_id = self._id(kind, item.id)
            if msg_id in sent_ids:
                continue
            if not eligible(created_at):
                break
            if kind == "comment":
                mail = self._comment_mail(msg_id, item, reply_subject, author_address)
            else:
                mail = self._review_mail(msg_id, item, reply_subject, author_address, author_username, author_role)
            if mail is not None:
                new_mails.append(mail)

        for review_comment in self.review_comments:
            msg_id = self._id("reviewcomment", review_comment.id)
            if msg_id in sent_ids or not eligible(review_comment.created_at):
                continue
            body = (
                f"{review_comment.path} line {review_comment.line}:\n\n"
                f"{review_comment.body.strip()}{_SEPARATOR}PR Review Comment: {self.pr.web_url}"
            )
            new_mails.append(
                self._email(
                    msg_id,
                    author_address(review_comment.author),
                    reply_subject,
                    body,
                    review_comment.created_at,
                    item=f"reviewcomment:{review_comment.id}",
                    in_reply_to=self.root_id,
                )
            )

        # A thread started after the PR was closed already announces it in the root mail
        started_closed = bool(sent_mails) and str(sent_mails[0][ITEM_HEADER] or "").strip() == _CLOSED_ROOT_ITEM
        if sent_mails and self.pr.state == PullRequestState.CLOSED and not started_closed:
            closed_id = self._id("closed")
            if closed_id not in sent_ids:
                if "integrated" in self.pr.labels:
                    body = "This pull request has now been integrated."
                else:
                    body = "This pull request has been closed without being integrated."
                new_mails.append(
                    self._email(
                        closed_id,
                        self.sender,
                        reply_subject,
                        f"{body}{_SEPARATOR}PR: {self.pr.web_url}",
                        self.pr.updated_at,
                        item="closed",
                        in_reply_to=self.root_id,
                    )
                )

        logger.info(f"{self.pr}: {len(new_mails)} new mails")
        return new_mails

    def _comment_mail(
        self,
        msg_id: str,
        comment: Comment,
        subject: str,
        author_address: Callable[[HostUser], EmailIdentity],
    ) -> EmailMessage:
        body = f"{comment.body.strip()}{_SEPARATOR}PR Comment: {self.pr.web_url}"
        return self._email(
            msg_id,
            author_address(comment.author),
            subject,
            body,
            comment.created_at,
            item=f"comment:{comment.id}",
            in_reply_to=self.root_id,
        )

    def _review_mail(
        self,
        msg_id: str,
        review: Review,
        subject: str,
        author_address: Callable[[HostUser], EmailIdentity],
        author_username: Callable[[HostUser], str],
        author_role: Callable[[HostUser], str],
    ) -> EmailMessage | None:
        username = author_username(review.reviewer)
        role = author_role(review.reviewer)
        if review.verdict == Verdict.APPROVED:
            verdict = f"Marked as reviewed by {username} ({role})."
        elif review.verdict == Verdict.DISAPPROVED:
            verdict = f"Changes requested by {username} ({role})."
        else:
            verdict = ""

        parts = [part for part in (review.body.strip(), verdict) if part]
        if not parts:
            return None

        body = "\n\n".join(parts) + f"{_SEPARATOR}PR Review: {self.pr.web_url}"
        return self._email(
            msg_id,
            author_address(review.reviewer),
            subject,
            body,
            review.created_at,
            item=f"review:{review.id}",
            in_reply_to=self.root_id,
        )
