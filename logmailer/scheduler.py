"""DispatchScheduler: debounce state machine between event intake and the notifier."""

import asyncio
import logging
from enum import Enum

from logmailer.aggregator import LogAggregator
from logmailer.classifier import EventClassifier
from logmailer.models import LogFragment, ProcessEvent
from logmailer.notifier import Notifier

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING = "pending"


class DispatchScheduler:
    """Decides when queued logs get mailed.

    - Error-category events arm one debounce timer if none is pending.
      Errors arriving while PENDING are queued and ride on that timer,
      since the drain happens when it fires, not when it was armed.
    - When the timer fires the notifier flushes every category, then the
      scheduler returns to IDLE whatever the outcome.
    - A non-error event carrying the broadcast marker dispatches right
      away in a detached task, leaving the timer slot alone.
    - Anything else is queued and waits for the next flush.

    There is one timer for the whole process, not one per category or
    process, and armed timers are never cancelled.
    """

    def __init__(
        self,
        classifier: EventClassifier,
        aggregator: LogAggregator,
        notifier: Notifier,
        error_category: str,
        broadcast_marker: str,
        debounce_sec: float,
    ) -> None:
        self._classifier = classifier
        self._aggregator = aggregator
        self._notifier = notifier
        self._error_category = error_category
        self._broadcast_marker = broadcast_marker
        self._debounce_sec = debounce_sec

        self.state = SchedulerState.IDLE
        self._timer: asyncio.Task | None = None
        self._broadcasts: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of outstanding timer and broadcast tasks."""
        return len(self._broadcasts) + (1 if self._timer is not None else 0)

    def handle_event(self, category: str, event: ProcessEvent) -> bool:
        """Queue an event and schedule its dispatch. Returns False if it was filtered out.

        Never awaits, so intake is not held up by mail delivery.
        """
        if not self._classifier.classify(category, event):
            return False

        self._aggregator.append(LogFragment(category, event.process_name, event.payload))

        if category == self._error_category:
            if self.state is SchedulerState.IDLE:
                self._arm_timer()
        elif self._broadcast_marker and self._broadcast_marker in event.payload:
            self._start_broadcast(category)
        return True

    def _arm_timer(self):
        self.state = SchedulerState.PENDING
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_debounce())
        logger.debug("Armed %.1fs error debounce timer", self._debounce_sec)

    async def _fire_after_debounce(self):
        try:
            await asyncio.sleep(self._debounce_sec)
            await self._notifier.dispatch(self._error_category)
        except Exception:
            logger.exception("Unexpected failure in debounced dispatch")
        finally:
            self._timer = None
            self.state = SchedulerState.IDLE

    def _start_broadcast(self, category: str):
        logger.info("Broadcast marker seen on %s, dispatching immediately", category)
        task = asyncio.get_running_loop().create_task(self._run_broadcast(category))
        self._broadcasts.add(task)
        task.add_done_callback(self._broadcasts.discard)

    async def _run_broadcast(self, category: str):
        try:
            await self._notifier.dispatch(category)
        except Exception:
            logger.exception("Unexpected failure in broadcast dispatch for %s", category)

    async def drain(self):
        """Wait for the pending timer and every in-flight broadcast to finish."""
        while True:
            tasks = list(self._broadcasts)
            if self._timer is not None:
                tasks.append(self._timer)
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
