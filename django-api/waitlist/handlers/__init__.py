from waitlist.handlers.views import (
    ActiveQueueView,
    QueueHistoryView,
    QueueTicketsView,
    TicketActionView,
    TicketDetailView,
    TicketEventsView,
    TicketPositionView,
)

__all__ = [
    "ActiveQueueView",
    "QueueHistoryView",
    "QueueTicketsView",
    "TicketActionView",
    "TicketDetailView",
    "TicketEventsView",
    "TicketPositionView",
]
