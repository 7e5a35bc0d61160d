"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from contextlib import AbstractContextManager
from datetime import date

from waitlist.domain import (
    AdmissionIdentity,
    Customer,
    CustomerId,
    Queue,
    QueueId,
    Tenant,
    TenantId,
    Ticket,
    TicketEvent,
    TicketId,
    TicketStatus,
)


class DuplicateTicketNumber(Exception):
    """Raised by `insert_ticket` when the daily sequence is already taken."""


class QueueStore(ABC):
    """Interface for queue, ticket and customer persistence operations."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager wrapping one unit of work."""
        ...

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run `callback` once the current unit of work commits."""
        ...

    @abstractmethod
    def get_tenant(self, tenant_id: TenantId) -> Tenant | None:
        ...

    @abstractmethod
    def get_queue(self, queue_id: QueueId, tenant_id: TenantId | None = None) -> Queue | None:
        """Return a queue by ID, or None if absent or owned by another tenant."""
        ...

    @abstractmethod
    def get_customer(self, customer_id: CustomerId) -> Customer | None:
        ...

    @abstractmethod
    def get_ticket(
        self,
        ticket_id: TicketId,
        tenant_id: TenantId | None = None,
        *,
        for_update: bool = False,
    ) -> Ticket | None:
        """Return a ticket by ID, or None if absent or owned by another tenant.

        With `for_update` the row stays locked until the unit of work ends.
        """
        ...

    @abstractmethod
    def count_tickets(self, queue_id: QueueId, statuses: Collection[TicketStatus]) -> int:
        ...

    @abstractmethod
    def count_tickets_created_on(self, queue_id: QueueId, day: date) -> int:
        """Count tickets of any status issued for the queue on `day`."""
        ...

    @abstractmethod
    def count_open_tickets_for(self, tenant_id: TenantId, identity: AdmissionIdentity) -> int:
        """Count non-terminal tickets held by `identity` anywhere in the tenant."""
        ...

    @abstractmethod
    def count_entries_for(
        self, queue_id: QueueId, identity: AdmissionIdentity, day: date
    ) -> int:
        """Count tickets issued to `identity` in the queue on `day`."""
        ...

    @abstractmethod
    def insert_ticket(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket.

        Raises:
            DuplicateTicketNumber: If (queue, service day, sequence) is taken.
        """
        ...

    @abstractmethod
    def save_ticket(self, ticket: Ticket) -> Ticket:
        """Persist the mutable fields of an existing ticket."""
        ...

    @abstractmethod
    def list_tickets(
        self, queue_id: QueueId, statuses: Collection[TicketStatus]
    ) -> list[Ticket]:
        """Return tickets of the queue in the given statuses, oldest arrival first."""
        ...

    @abstractmethod
    def search_history(
        self,
        queue_id: QueueId,
        statuses: Collection[TicketStatus],
        search: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Ticket], int]:
        """Return one slice of matching tickets, newest arrival first, and the total."""
        ...

    @abstractmethod
    def recent_service_durations(self, queue_id: QueueId, limit: int) -> list[int]:
        """Return durations of the latest FINISHED tickets, most recent first."""
        ...

    @abstractmethod
    def append_event(self, event: TicketEvent) -> TicketEvent:
        ...

    @abstractmethod
    def list_events(self, ticket_id: TicketId) -> list[TicketEvent]:
        """Return events of a ticket in the order they were recorded."""
        ...

    @abstractmethod
    def increment_customer_counters(
        self,
        customer_id: CustomerId,
        *,
        visits: int = 0,
        fast_lane: int = 0,
        vip: int = 0,
        no_shows: int = 0,
    ) -> Customer | None:
        """Add to the customer's aggregate counters and return the updated customer."""
        ...
