"""Units of schedulable work and the bots that produce them."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path


class WorkItem(ABC):
    """A unit of work executed by the runner.

    Two items that are not concurrent with each other never run at the same
    time. Items are regenerated from live forge state on every poll, so an
    item that is dropped after a failure is simply rediscovered later.
    """

    @abstractmethod
    def concurrent_with(self, other: "WorkItem") -> bool:
        """Whether this item may run at the same time as ``other``."""

    @abstractmethod
    def run(self, scratch_path: Path) -> list["WorkItem"]:
        """Execute the item.

        Args:
            scratch_path: Private, empty directory owned by this execution.

        Returns:
            Follow-up items to schedule.
        """

    def handle_runtime_exception(self, error: Exception) -> None:
        """Called by the runner when ``run`` raised, before the item is dropped."""


class Bot(ABC):
    """Produces work items on every poll."""

    @abstractmethod
    def get_periodic_items(self) -> list[WorkItem]:
        """Enumerate the work that should be done now."""


@dataclass
class WorkOutcome:
    """Result of executing a single work item."""

    item: WorkItem
    follow_ups: list[WorkItem] = field(default_factory=list)
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None
