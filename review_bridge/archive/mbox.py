"""Mbox files holding the archived mail threads of pull requests."""

from dataclasses import dataclass, field
from email import message_from_binary_file, policy
from email.message import EmailMessage
import logging
import mailbox
from pathlib import Path


logger = logging.getLogger(__name__)


def message_id(message: EmailMessage) -> str:
    return str(message.get("Message-Id", "")).strip()


@dataclass
class Conversation:
    """A thread: the first message and every reply below it."""

    first: EmailMessage
    replies: list[EmailMessage] = field(default_factory=list)

    def all_messages(self) -> list[EmailMessage]:
        return [self.first, *self.replies]


def _parse(fp) -> EmailMessage:
    return message_from_binary_file(fp, policy=policy.default)


class MboxList:
    """A single mbox file, one per pull request."""

    def __init__(self, path: Path):
        self.path = path

    def messages(self) -> list[EmailMessage]:
        if not self.path.exists():
            return []
        box = mailbox.mbox(self.path, factory=_parse, create=False)
        try:
            return list(box)
        finally:
            box.close()

    def conversations(self) -> list[Conversation]:
        """Group the messages into threads using In-Reply-To."""
        messages = self.messages()
        by_id = {message_id(m): m for m in messages}
        threads: dict[str, Conversation] = {}

        for message in messages:
            root = message
            seen = {message_id(root)}
            parent = str(root.get("In-Reply-To", "")).strip()
            while parent in by_id and parent not in seen:
                root = by_id[parent]
                seen.add(parent)
                parent = str(root.get("In-Reply-To", "")).strip()

            conversation = threads.setdefault(message_id(root), Conversation(first=root))
            if message is not root:
                conversation.replies.append(message)

        return list(threads.values())

    def post(self, message: EmailMessage) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        box = mailbox.mbox(self.path)
        box.lock()
        try:
            box.add(message)
            box.flush()
        finally:
            box.unlock()
            box.close()
        logger.debug(f"Archived {message_id(message)} in {self.path.name}")


class MboxArchive:
    """Directory of mbox files, named after the pull request id."""

    def __init__(self, base_path: Path):
        self.base_path = base_path

    def get_list(self, name: str) -> MboxList:
        return MboxList(self.base_path / f"{name}.mbox")
