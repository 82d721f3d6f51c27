"""Mock implementations for testing."""

from .census import make_census
from .forge import BOT_USER, MockForgeClient, make_pr
from .mail import RecordingMailingList


__all__ = ["BOT_USER", "MockForgeClient", "RecordingMailingList", "make_census", "make_pr"]
