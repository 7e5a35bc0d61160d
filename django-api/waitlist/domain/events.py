"""Domain events raised by the ticket lifecycle."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from waitlist.domain.models import Ticket, TicketStatus
from waitlist.domain.value_objects import QueueId, TenantId, TicketId


@dataclass(frozen=True)
class TicketTransitioned:
    """A ticket moved through the lifecycle inside the current unit of work."""

    before: Ticket | None
    after: Ticket
    occurred_at: datetime

    @property
    def waiting_set_changed(self) -> bool:
        was_waiting = self.before is not None and self.before.status is TicketStatus.WAITING
        return was_waiting != (self.after.status is TicketStatus.WAITING)


@dataclass(frozen=True)
class TicketStatusChanged:
    """Payload handed to observers after a transition commits."""

    ticket_id: TicketId
    queue_id: QueueId
    tenant_id: TenantId
    new_status: TicketStatus
    timestamp: datetime

    @classmethod
    def from_transition(cls, event: TicketTransitioned) -> "TicketStatusChanged":
        return cls(
            ticket_id=event.after.id,
            queue_id=event.after.queue_id,
            tenant_id=event.after.tenant_id,
            new_status=event.after.status,
            timestamp=event.occurred_at,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "ticket_id": str(self.ticket_id),
            "queue_id": str(self.queue_id),
            "tenant_id": str(self.tenant_id),
            "new_status": self.new_status.value,
            "timestamp": self.timestamp.isoformat(),
        }
