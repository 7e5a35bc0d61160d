from waitlist.domain.models import (
    Actor,
    ActorKind,
    AdmissionIdentity,
    Customer,
    EventKind,
    Page,
    Position,
    PriorityClass,
    Queue,
    QueueEntry,
    QueueStatus,
    Tenant,
    Ticket,
    TicketEvent,
    TicketOrigin,
    TicketStatus,
)
from waitlist.domain.value_objects import (
    Capacity,
    CustomerId,
    Money,
    PartySize,
    QueueId,
    TenantId,
    TicketId,
)

__all__ = [
    "Actor",
    "ActorKind",
    "AdmissionIdentity",
    "Customer",
    "EventKind",
    "Page",
    "Position",
    "PriorityClass",
    "Queue",
    "QueueEntry",
    "QueueStatus",
    "Tenant",
    "Ticket",
    "TicketEvent",
    "TicketOrigin",
    "TicketStatus",
    "TicketId",
    "QueueId",
    "TenantId",
    "CustomerId",
    "Money",
    "Capacity",
    "PartySize",
]
