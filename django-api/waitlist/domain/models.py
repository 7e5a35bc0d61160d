"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in waitlist/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from waitlist.domain.value_objects import (
    Capacity,
    CustomerId,
    Money,
    QueueId,
    TenantId,
    TicketId,
)


class QueueStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


class PriorityClass(str, Enum):
    """Priority classes; `rank` is lower for tickets served sooner."""

    VIP = "VIP"
    FAST_LANE = "FAST_LANE"
    NORMAL = "NORMAL"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    PriorityClass.VIP: 1,
    PriorityClass.FAST_LANE: 2,
    PriorityClass.NORMAL: 3,
}


class TicketStatus(str, Enum):
    WAITING = "WAITING"
    CALLED = "CALLED"
    CONFIRMED = "CONFIRMED"
    SERVING = "SERVING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TicketStatus.FINISHED, TicketStatus.CANCELLED, TicketStatus.NO_SHOW}
)

# Statuses that hold a seat against the queue's concurrency ceiling.
OCCUPYING_STATUSES = frozenset(
    {
        TicketStatus.WAITING,
        TicketStatus.CALLED,
        TicketStatus.CONFIRMED,
        TicketStatus.SERVING,
    }
)


class TicketOrigin(str, Enum):
    """Where the ticket was issued: staff terminal or customer app."""

    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class ActorKind(str, Enum):
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


class EventKind(str, Enum):
    CREATED = "CREATED"
    CALLED = "CALLED"
    CONFIRMED = "CONFIRMED"
    SERVICE_STARTED = "SERVICE_STARTED"
    SKIPPED = "SKIPPED"
    RECALLED = "RECALLED"
    NO_SHOW = "NO_SHOW"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Tenant:
    """Domain representation of a venue and its fee schedule."""

    id: TenantId
    name: str
    slug: str
    fast_lane_fee: Money
    vip_fee: Money
    no_show_warning_threshold: int


@dataclass(frozen=True)
class Queue:
    """Domain representation of a Queue."""

    id: QueueId
    tenant_id: TenantId
    name: str
    status: QueueStatus
    max_concurrent: Capacity
    max_entries_per_day: Capacity | None = None

    @property
    def is_accepting(self) -> bool:
        return self.status is QueueStatus.ACTIVE


@dataclass(frozen=True)
class Customer:
    """Domain representation of a Customer and its aggregate counters."""

    id: CustomerId
    tenant_id: TenantId
    name: str
    phone: str | None = None
    is_vip: bool = False
    is_blocked: bool = False
    blocked_reason: str | None = None
    total_visits: int = 0
    total_fast_lane: int = 0
    total_vip: int = 0
    total_no_shows: int = 0


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    tenant_id: TenantId
    queue_id: QueueId
    number: str
    sequence: int
    service_day: date
    customer_name: str
    priority: PriorityClass
    status: TicketStatus
    party_size: int
    priority_fee: Money
    origin: TicketOrigin
    arrived_at: datetime
    customer_id: CustomerId | None = None
    phone: str | None = None
    called_at: datetime | None = None
    confirmed_at: datetime | None = None
    serving_started_at: datetime | None = None
    finished_at: datetime | None = None
    cancelled_at: datetime | None = None
    no_show_count: int = 0
    recall_count: int = 0
    service_duration: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class TicketEvent:
    """Append-only audit record of one lifecycle step."""

    ticket_id: TicketId
    tenant_id: TenantId
    kind: EventKind
    actor_kind: ActorKind
    actor_id: str
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as resolved by the auth layer."""

    tenant_id: TenantId
    kind: ActorKind
    actor_id: str
    customer_id: CustomerId | None = None


@dataclass(frozen=True)
class AdmissionIdentity:
    """Who is joining: an app customer, or a walk-in known by phone."""

    customer_id: CustomerId | None = None
    phone: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.customer_id is None and not self.phone


@dataclass(frozen=True)
class Position:
    """Live rank of a waiting ticket; zero for anything not waiting."""

    position: int
    eta_minutes: int

    @classmethod
    def none(cls) -> "Position":
        return cls(position=0, eta_minutes=0)


@dataclass(frozen=True)
class Page:
    """One page of a listing."""

    items: tuple[Any, ...]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0


@dataclass(frozen=True)
class QueueEntry:
    """A ticket in the live queue listing with its current position."""

    ticket: Ticket
    position: Position
