"""Capacity and anti-abuse checks run before a ticket is admitted.

The checks are advisory reads: two simultaneous admissions for the same
identity can both pass before either ticket is written.
"""

from datetime import date

from waitlist.conf import engine_setting
from waitlist.domain import AdmissionIdentity, Queue
from waitlist.domain.errors import (
    ActiveTicketExistsError,
    AdmissionError,
    CustomerBlockedError,
    DailyEntryLimitError,
    QueueFullError,
    QueueNotAcceptingError,
)
from waitlist.domain.models import OCCUPYING_STATUSES
from waitlist.stores.interfaces import QueueStore


class AdmissionGuard:
    def __init__(self, store: QueueStore, enforce_daily_limit: bool | None = None) -> None:
        self._store = store
        self._enforce_daily_limit = (
            enforce_daily_limit
            if enforce_daily_limit is not None
            else engine_setting("ENFORCE_DAILY_ENTRY_LIMIT")
        )

    def can_admit(
        self, queue: Queue, identity: AdmissionIdentity, day: date
    ) -> AdmissionError | None:
        """Return the first reason to refuse admission, or None if allowed."""
        if not queue.is_accepting:
            return QueueNotAcceptingError()

        ceiling = queue.max_concurrent.value
        if self._store.count_tickets(queue.id, OCCUPYING_STATUSES) >= ceiling:
            return QueueFullError(ceiling)

        if identity.is_anonymous:
            return None

        if self._store.count_open_tickets_for(queue.tenant_id, identity) > 0:
            return ActiveTicketExistsError()

        limit = queue.max_entries_per_day
        if self._enforce_daily_limit and limit is not None:
            if self._store.count_entries_for(queue.id, identity, day) >= limit.value:
                return DailyEntryLimitError(limit.value)

        if identity.customer_id is not None:
            customer = self._store.get_customer(identity.customer_id)
            if customer is not None and customer.is_blocked:
                return CustomerBlockedError()

        return None

    def ensure_can_admit(self, queue: Queue, identity: AdmissionIdentity, day: date) -> None:
        """Raises the AdmissionError returned by `can_admit`, if any."""
        reason = self.can_admit(queue, identity, day)
        if reason is not None:
            raise reason
