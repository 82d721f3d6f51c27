"""Mailing list archive of pull request activity."""

from .builder import HEAD_HASH_HEADER, TRACKING_HEADER_PREFIX, ReviewArchive
from .mbox import Conversation, MboxArchive, MboxList, message_id
from .relay import SmtpMailingList, prepare_for_list


__all__ = [
    "HEAD_HASH_HEADER",
    "TRACKING_HEADER_PREFIX",
    "Conversation",
    "MboxArchive",
    "MboxList",
    "ReviewArchive",
    "SmtpMailingList",
    "message_id",
    "prepare_for_list",
]
