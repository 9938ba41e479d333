"""LogAggregator: owns the category queues and coalesces them into log entries."""

import html
import logging

from logmailer.buffer import CategoryQueue
from logmailer.models import AggregatedLogEntry, LogFragment

logger = logging.getLogger(__name__)


class LogAggregator:
    def __init__(self, categories: list[str]):
        # dict keeps configuration order, which is the aggregation order
        self._queues: dict[str, CategoryQueue] = {c: CategoryQueue(c) for c in categories}

    @property
    def categories(self) -> list[str]:
        return list(self._queues)

    def append(self, fragment: LogFragment):
        """Queue a fragment under its category. Unknown categories raise KeyError."""
        self._queues[fragment.category].append(fragment)

    def pending(self) -> dict[str, int]:
        return {category: len(q) for category, q in self._queues.items()}

    def aggregate(self) -> list[AggregatedLogEntry]:
        """Drain every queue and coalesce fragments per (process, category).

        Messages are concatenated in arrival order and escaped afterwards.
        Process groups keep first-seen order; categories keep config order.
        """
        entries: list[AggregatedLogEntry] = []
        for category, q in self._queues.items():
            content: dict[str, str] = {}
            for fragment in q.drain_all():
                content[fragment.process_name] = content.get(fragment.process_name, "") + fragment.message
            for name, message in content.items():
                entries.append(AggregatedLogEntry(label=f"{name} {category}", escaped_message=html.escape(message)))
        return entries

    def close(self):
        """Discard anything still queued at shutdown."""
        dropped = sum(len(q.drain_all()) for q in self._queues.values())
        if dropped:
            logger.warning("Dropped %d undelivered log fragment(s) on shutdown", dropped)
