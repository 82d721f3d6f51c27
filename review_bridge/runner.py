"""Runner that polls bots and executes their work items."""

from collections import deque
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
import logging
from pathlib import Path
import tempfile
import time

from .workitem import Bot, WorkItem, WorkOutcome


logger = logging.getLogger(__name__)


class BotRunner:
    """Polls bots for work and executes it on a thread pool.

    No item is started while another item it is not concurrent with is
    running. Each execution gets a fresh scratch directory that is removed
    when the item finishes.
    """

    def __init__(
        self,
        bots: list[Bot],
        workers: int = 4,
        interval_seconds: int = 60,
        scratch_base: Path | None = None,
    ):
        """Initialize the runner.

        Args:
            bots: Bots to poll on every cycle.
            workers: Maximum number of items running at once.
            interval_seconds: Delay between poll cycles in daemon mode.
            scratch_base: Directory under which scratch directories are created.
        """
        self.bots = bots
        self.workers = max(1, workers)
        self.interval_seconds = interval_seconds
        self.scratch_base = scratch_base
        self._running = False
        self._retry_at: datetime | None = None

    def request_retry(self, when: datetime) -> None:
        """Ask for a poll no later than ``when``."""
        if self._retry_at is None or when < self._retry_at:
            logger.debug(f"Retry requested at {when.isoformat()}")
            self._retry_at = when

    def collect_items(self) -> list[WorkItem]:
        """Ask every bot for its periodic work items."""
        items = []
        for bot in self.bots:
            try:
                items.extend(bot.get_periodic_items())
            except Exception:
                logger.exception(f"Failed to get work items from {bot}")
        return items

    def run_items(self, items: Iterable[WorkItem]) -> list[WorkOutcome]:
        """Execute items and their follow-ups until no work is left.

        Returns:
            One outcome per executed item, in completion order.
        """
        pending: deque[WorkItem] = deque(items)
        active: dict[Future, WorkItem] = {}
        outcomes: list[WorkOutcome] = []

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            while pending or active:
                for item in list(pending):
                    if len(active) >= self.workers:
                        break
                    if self._can_start(item, active.values()):
                        pending.remove(item)
                        logger.debug(f"Starting {item}")
                        active[executor.submit(self._execute, item)] = item

                done, _ = wait(active, return_when=FIRST_COMPLETED)
                for future in done:
                    del active[future]
                    outcome = future.result()
                    outcomes.append(outcome)
                    pending.extend(outcome.follow_ups)

        return outcomes

    @staticmethod
    def _can_start(item: WorkItem, active: Iterable[WorkItem]) -> bool:
        return all(item.concurrent_with(other) and other.concurrent_with(item) for other in active)

    def _execute(self, item: WorkItem) -> WorkOutcome:
        if self.scratch_base is not None:
            self.scratch_base.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="review_bridge_", dir=self.scratch_base) as scratch:
            try:
                follow_ups = item.run(Path(scratch))
            except Exception as e:
                try:
                    item.handle_runtime_exception(e)
                except Exception:
                    logger.exception(f"Failure handler of {item} raised")
                logger.exception(f"Work item {item} failed")
                return WorkOutcome(item, error=e)

        return WorkOutcome(item, follow_ups=list(follow_ups or []))

    def run_once(self) -> list[WorkOutcome]:
        """Run a single poll cycle.

        Returns:
            Outcomes of all items executed during the cycle.
        """
        logger.info("Starting poll cycle")

        items = self.collect_items()
        logger.info(f"Found {len(items)} work items")

        outcomes = self.run_items(items)

        failed = sum(1 for outcome in outcomes if outcome.failed)
        logger.info(f"Poll cycle complete. Executed {len(outcomes)} items, {failed} failed.")
        return outcomes

    def _next_delay(self) -> float:
        delay = float(self.interval_seconds)
        if self._retry_at is not None:
            until_retry = (self._retry_at - datetime.now(timezone.utc)).total_seconds()
            delay = max(0.0, min(delay, until_retry))
            self._retry_at = None
        return delay

    def run_daemon(self) -> None:
        """Run as a daemon, polling continuously."""
        logger.info(f"Starting runner daemon (interval={self.interval_seconds}s, workers={self.workers})")

        self._running = True

        while self._running:
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in poll cycle: {e}")

            if self._running:
                delay = self._next_delay()
                logger.debug(f"Sleeping for {delay:.0f}s")
                time.sleep(delay)

    def stop(self) -> None:
        """Stop the daemon."""
        logger.info("Stopping runner daemon")
        self._running = False
