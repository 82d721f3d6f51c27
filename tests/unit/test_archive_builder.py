"""Tests for building archive mails and storing them in mbox files."""

from datetime import timedelta
from pathlib import Path

import pytest

from review_bridge.archive import HEAD_HASH_HEADER, MboxList, ReviewArchive, message_id, prepare_for_list
from review_bridge.models import (
    Comment,
    EmailIdentity,
    HostUser,
    PullRequestState,
    Review,
    ReviewComment,
    Verdict,
    WebrevDescription,
)

from ..mocks.forge import BASE_TIME, make_pr


SENDER = EmailIdentity("Bridge", "bridge@openjdk.example")
ALICE = HostUser(id="301", username="alice", full_name="Alice")
NOW = BASE_TIME + timedelta(hours=1)


class Recorder:
    """Collects webrev callbacks and retry requests."""

    def __init__(self):
        self.webrevs: list[tuple[int, list[WebrevDescription]]] = []
        self.retries = []

    def generate(self, pr, base, head, previous):
        webrevs = [WebrevDescription("Full", f"https://webrevs.example/{head[:7]}")]
        if previous:
            webrevs.append(WebrevDescription("Incremental", f"https://webrevs.example/{previous[:7]}-{head[:7]}"))
        return webrevs

    def callback(self, index, webrevs):
        self.webrevs.append((index, webrevs))


def generate(archive: ReviewArchive, sent, recorder: Recorder, cooldown=timedelta(0), now=NOW, prefix=""):
    return archive.generate_new_emails(
        sent,
        cooldown=cooldown,
        fetch_url="https://forge.example/example/project.git",
        webrev_generator=recorder.generate,
        webrev_callback=recorder.callback,
        author_address=lambda user: EmailIdentity(user.full_name or user.username, f"{user.username}@openjdk.example"),
        author_username=lambda user: user.username,
        author_role=lambda user: "Reviewer",
        subject_prefix=prefix,
        retry_consumer=recorder.retries.append,
        now=now,
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestFirstMail:
    """Tests for the mail that starts a thread."""

    def test_rfr_mail(self, recorder: Recorder):
        pr = make_pr()
        mails = generate(ReviewArchive(pr, SENDER), [], recorder, prefix="[project:master] ")

        assert len(mails) == 1
        mail = mails[0]
        assert mail["Subject"] == "[project:master] RFR: 8123456: Fix the frobnicator"
        assert mail[HEAD_HASH_HEADER] == pr.head_hash
        assert mail["In-Reply-To"] is None
        body = mail.get_content()
        assert "This fixes the frobnicator." in body
        assert "[Full](https://webrevs.example/aaaaaaa)" in body
        assert f"git fetch https://forge.example/example/project.git {pr.source_ref}:pull/42" in body
        assert recorder.webrevs == [(0, recorder.generate(pr, "master", pr.head_hash, None))]

    def test_integrated_subject_for_closed_pr(self, recorder: Recorder):
        pr = make_pr(state=PullRequestState.CLOSED, labels=["integrated"])
        mails = generate(ReviewArchive(pr, SENDER), [], recorder)

        assert mails[0]["Subject"] == "Integrated: 8123456: Fix the frobnicator"
        # No closing notice without an earlier thread
        assert len(mails) == 1

    def test_closed_pr_second_run_sends_nothing(self, recorder: Recorder, tmp_path: Path):
        pr = make_pr(state=PullRequestState.CLOSED, labels=["integrated"])
        mbox = MboxList(tmp_path / "42.mbox")
        for mail in generate(ReviewArchive(pr, SENDER), [], recorder):
            mbox.post(mail)

        assert generate(ReviewArchive(pr, SENDER), mbox.messages(), recorder) == []

    def test_closed_after_open_thread_gets_notice(self, recorder: Recorder):
        pr = make_pr()
        first = generate(ReviewArchive(pr, SENDER), [], recorder)

        pr.state = PullRequestState.CLOSED
        pr.labels.append("integrated")
        mails = generate(ReviewArchive(pr, SENDER), first, recorder)

        assert [m["Subject"] for m in mails] == ["Re: RFR: 8123456: Fix the frobnicator"]
        assert "This pull request has now been integrated." in mails[0].get_content()


class TestReplies:
    """Tests for mails added to an existing thread."""

    def test_comments_and_reviews_in_time_order(self, recorder: Recorder):
        pr = make_pr()
        archive = ReviewArchive(pr, SENDER)
        archive.add_comment(Comment("c1", ALICE, "Why this change?", BASE_TIME + timedelta(minutes=5)))
        archive.add_review(Review("r1", ALICE, "", Verdict.APPROVED, pr.head_hash, BASE_TIME + timedelta(minutes=2)))
        archive.add_review_comment(
            ReviewComment("rc1", ALICE, "Off by one?", "src/a.c", 12, pr.head_hash, BASE_TIME + timedelta(minutes=3))
        )

        mails = generate(archive, [], recorder)

        assert len(mails) == 4
        root_id = message_id(mails[0])
        assert "Marked as reviewed by alice (Reviewer)." in mails[1].get_content()
        assert "Why this change?" in mails[2].get_content()
        assert "src/a.c line 12:" in mails[3].get_content()
        for reply in mails[1:]:
            assert reply["In-Reply-To"] == root_id
            assert reply["Subject"] == "Re: RFR: 8123456: Fix the frobnicator"

    def test_empty_review_is_skipped(self, recorder: Recorder):
        pr = make_pr()
        archive = ReviewArchive(pr, SENDER)
        archive.add_review(Review("r1", ALICE, "  ", Verdict.NONE, pr.head_hash, BASE_TIME))

        assert len(generate(archive, [], recorder)) == 1

    def test_new_revision(self, recorder: Recorder):
        first = make_pr(head_hash="a" * 40)
        sent = generate(ReviewArchive(first, SENDER), [], recorder)

        updated = make_pr(head_hash="b" * 40)
        mails = generate(ReviewArchive(updated, SENDER), sent, recorder)

        assert len(mails) == 1
        assert mails[0][HEAD_HASH_HEADER] == "b" * 40
        assert mails[0]["In-Reply-To"] == message_id(sent[0])
        assert "has updated the pull request" in mails[0].get_content()
        assert recorder.webrevs[-1][0] == 1
        assert [w.label for w in recorder.webrevs[-1][1]] == ["Full", "Incremental"]

    def test_closed_notice(self, recorder: Recorder):
        sent = generate(ReviewArchive(make_pr(), SENDER), [], recorder)
        closed = make_pr(state=PullRequestState.CLOSED, labels=["integrated"])

        mails = generate(ReviewArchive(closed, SENDER), sent, recorder)

        assert len(mails) == 1
        assert "has now been integrated" in mails[0].get_content()
        assert mails[0]["From"] == "Bridge <bridge@openjdk.example>"


class TestIdempotence:
    """Running the builder over its own output yields nothing."""

    def test_second_run_is_empty(self, recorder: Recorder):
        pr = make_pr()

        def archive_with_activity() -> ReviewArchive:
            archive = ReviewArchive(pr, SENDER)
            archive.add_comment(Comment("c1", ALICE, "Looks good", BASE_TIME))
            archive.add_review(Review("r1", ALICE, "Ship it", Verdict.APPROVED, pr.head_hash, BASE_TIME))
            return archive

        sent = generate(archive_with_activity(), [], recorder)
        again = generate(archive_with_activity(), sent, recorder)

        assert len(sent) == 3
        assert again == []
        # No new revision, so no webrev update either
        assert len(recorder.webrevs) == 1

    def test_idempotent_through_mbox(self, tmp_path: Path, recorder: Recorder):
        pr = make_pr()
        archive = ReviewArchive(pr, SENDER)
        archive.add_comment(Comment("c1", ALICE, "Looks good", BASE_TIME))
        mbox = MboxList(tmp_path / "example" / "project" / "42.mbox")
        for mail in generate(archive, [], recorder):
            mbox.post(mail)

        conversations = mbox.conversations()
        assert len(conversations) == 1

        again = generate(archive, conversations[0].all_messages(), recorder)
        assert again == []


class TestCooldown:
    """Tests for holding back recent activity."""

    def test_recent_comment_is_deferred(self, recorder: Recorder):
        pr = make_pr()
        sent = generate(ReviewArchive(pr, SENDER), [], recorder)

        archive = ReviewArchive(pr, SENDER)
        old = Comment("c1", ALICE, "first", BASE_TIME)
        fresh = Comment("c2", ALICE, "second", NOW - timedelta(seconds=10))
        later = Comment("c3", ALICE, "third", NOW - timedelta(seconds=5))
        for comment in (old, fresh, later):
            archive.add_comment(comment)

        mails = generate(archive, sent, recorder, cooldown=timedelta(minutes=1))

        assert [m.get_content().split("\n")[0] for m in mails] == ["first"]
        assert recorder.retries == [fresh.created_at + timedelta(minutes=1)]

    def test_deferred_comment_sent_after_cooldown(self, recorder: Recorder):
        pr = make_pr()
        sent = generate(ReviewArchive(pr, SENDER), [], recorder)
        archive = ReviewArchive(pr, SENDER)
        archive.add_comment(Comment("c2", ALICE, "second", NOW - timedelta(seconds=10)))

        mails = generate(archive, sent, recorder, cooldown=timedelta(minutes=1), now=NOW + timedelta(minutes=2))

        assert len(mails) == 1
        assert recorder.retries == []


class TestRelay:
    """Tests for preparing archived mails for the list."""

    def test_tracking_headers_removed(self, recorder: Recorder):
        mail = generate(ReviewArchive(make_pr(), SENDER), [], recorder)[0]

        outgoing = prepare_for_list(mail, {"List-Id": "<dev.openjdk.example>"}, ["dev@openjdk.example", "a@b.c"])

        assert outgoing[HEAD_HASH_HEADER] is None
        assert not [name for name in outgoing.keys() if name.startswith("PR-")]
        assert outgoing["List-Id"] == "<dev.openjdk.example>"
        assert outgoing["To"] == "dev@openjdk.example, a@b.c"
        # The archived copy keeps its tracking headers
        assert mail[HEAD_HASH_HEADER] is not None
