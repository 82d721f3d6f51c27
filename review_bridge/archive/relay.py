"""Delivery of archived mails to the real mailing lists."""

import copy
from email.message import EmailMessage
import logging
import smtplib

from .builder import TRACKING_HEADER_PREFIX


logger = logging.getLogger(__name__)


def prepare_for_list(message: EmailMessage, headers: dict[str, str], recipients: list[str]) -> EmailMessage:
    """Copy of an archived mail as it should appear on the list.

    Tracking headers (``PR-`` prefix) are removed, the configured headers
    are set and the mail is addressed to ``recipients``.
    """
    outgoing = copy.deepcopy(message)
    for name in {key for key in outgoing.keys() if key.startswith(TRACKING_HEADER_PREFIX)}:
        del outgoing[name]
    for name, value in headers.items():
        del outgoing[name]
        outgoing[name] = value
    del outgoing["To"]
    outgoing["To"] = ", ".join(recipients)
    return outgoing


class SmtpMailingList:
    """Posts mails to a list through an SMTP server."""

    def __init__(self, host: str, port: int = 25, timeout: int = 30):
        self.host = host
        self.port = port
        self.timeout = timeout

    def post(self, message: EmailMessage) -> None:
        logger.info(f"Sending {message['Message-Id']} to {message['To']} via {self.host}:{self.port}")
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.send_message(message)
