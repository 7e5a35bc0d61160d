from waitlist.services.ticket_service import TicketService
from waitlist.stores import DjangoQueueStore


def ticket_service() -> TicketService:
    """Service wired to the Django ORM store."""
    return TicketService(DjangoQueueStore())


__all__ = ["TicketService", "ticket_service"]
