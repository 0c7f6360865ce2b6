"""
Ordering of overlapping store transitions.

Every transition takes a ticket from a monotonic counter. A server response
is only applied if no transition with a newer ticket has been applied in the
meantime; otherwise it is stale and dropped.
"""


class RequestSequencer:
    """Monotonic ticket counter for one store."""

    def __init__(self):
        self._issued = 0
        self._applied = 0

    def next_ticket(self) -> int:
        self._issued += 1
        return self._issued

    def is_stale(self, ticket: int) -> bool:
        return ticket < self._applied

    def mark_applied(self, ticket: int) -> None:
        if ticket > self._applied:
            self._applied = ticket

    @property
    def last_applied(self) -> int:
        return self._applied
