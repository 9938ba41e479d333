"""EventClassifier: decides which supervisor events the mailer tracks."""

import logging

from logmailer.models import ProcessEvent

logger = logging.getLogger(__name__)


class EventClassifier:
    def __init__(self, targets: dict[str, tuple[str, ...]]):
        self._watch = {category: frozenset(names) for category, names in targets.items()}

    @property
    def categories(self) -> list[str]:
        return list(self._watch)

    def classify(self, category: str, event: ProcessEvent) -> bool:
        """True if the event's process is on the watch-list for its category.

        Rejected events are a filter, not a failure: they are only logged at debug.
        """
        watched = self._watch.get(category)
        if watched is None or event.process_name not in watched:
            logger.debug("Ignoring %s event from %s", category, event.process_name)
            return False
        return True
