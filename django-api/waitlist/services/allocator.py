"""Per-day sequential ticket numbers.

The next number is derived by counting the queue's tickets for the day, which
races under concurrent admissions. Instead of a queue-wide lock, a collision on
the storage uniqueness constraint is retried with a linear backoff.
"""

import logging
import time
from collections.abc import Callable
from datetime import date, datetime

from waitlist.conf import engine_setting
from waitlist.domain import QueueId, Ticket, TicketOrigin
from waitlist.domain.errors import TicketNumberExhaustedError
from waitlist.stores.interfaces import DuplicateTicketNumber, QueueStore

logger = logging.getLogger(__name__)


class TicketNumberAllocator:
    """Issues `A-007` style numbers, with a timestamp fragment for app tickets."""

    def __init__(
        self,
        store: QueueStore,
        *,
        prefix: str | None = None,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._prefix = prefix or engine_setting("TICKET_PREFIX")
        self._max_attempts = max_attempts or engine_setting("ALLOCATION_MAX_ATTEMPTS")
        self._backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else engine_setting("ALLOCATION_BACKOFF_SECONDS")
        )
        self._sleep = sleep

    def format_number(self, sequence: int, origin: TicketOrigin, now: datetime) -> str:
        number = f"{self._prefix}-{sequence:03d}"
        if origin is TicketOrigin.REMOTE:
            fragment = int(now.timestamp() * 1000) % 10_000
            number = f"{number}-{fragment:04d}"
        return number

    def allocate(
        self, queue_id: QueueId, day: date, origin: TicketOrigin, now: datetime
    ) -> tuple[int, str]:
        """Return the next (sequence, number) pair for the queue and day."""
        sequence = self._store.count_tickets_created_on(queue_id, day) + 1
        return sequence, self.format_number(sequence, origin, now)

    def issue(
        self,
        queue_id: QueueId,
        day: date,
        origin: TicketOrigin,
        now: datetime,
        build: Callable[[int, str], Ticket],
    ) -> Ticket:
        """Allocate a number and insert the ticket `build` makes from it.

        Must run inside the unit of work that creates the ticket.

        Raises:
            TicketNumberExhaustedError: If every attempt collided.
        """
        for attempt in range(1, self._max_attempts + 1):
            sequence, number = self.allocate(queue_id, day, origin, now)
            try:
                return self._store.insert_ticket(build(sequence, number))
            except DuplicateTicketNumber:
                logger.warning(
                    "Ticket number collision",
                    extra={"queue_id": str(queue_id), "number": number, "attempt": attempt},
                )
                if attempt < self._max_attempts:
                    self._sleep(attempt * self._backoff_seconds)

        logger.error(
            "Ticket number allocation exhausted",
            extra={"queue_id": str(queue_id), "attempts": self._max_attempts},
        )
        raise TicketNumberExhaustedError(self._max_attempts)
