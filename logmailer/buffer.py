"""CategoryQueue: append-only buffer of log fragments for one event category."""

from logmailer.models import LogFragment


class CategoryQueue:
    def __init__(self, category: str):
        self.category = category
        self._fragments: list[LogFragment] = []

    def __len__(self) -> int:
        return len(self._fragments)

    def append(self, fragment: LogFragment):
        self._fragments.append(fragment)

    def drain_all(self) -> list[LogFragment]:
        """Return every buffered fragment and leave the queue empty.

        Swapping the list out in one step means an append on the same loop
        can land either before or after the drain, never in both.
        """
        drained, self._fragments = self._fragments, []
        return drained
