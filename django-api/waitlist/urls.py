from django.urls import path

from waitlist.handlers import (
    ActiveQueueView,
    QueueHistoryView,
    QueueTicketsView,
    TicketActionView,
    TicketDetailView,
    TicketEventsView,
    TicketPositionView,
)

urlpatterns = [
    path("queues/<str:queue_id>/tickets", QueueTicketsView.as_view(), name="queue-tickets"),
    path(
        "queues/<str:queue_id>/tickets/active",
        ActiveQueueView.as_view(),
        name="queue-active",
    ),
    path(
        "queues/<str:queue_id>/tickets/history",
        QueueHistoryView.as_view(),
        name="queue-history",
    ),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path(
        "tickets/<str:ticket_id>/position",
        TicketPositionView.as_view(),
        name="ticket-position",
    ),
    path("tickets/<str:ticket_id>/events", TicketEventsView.as_view(), name="ticket-events"),
    path(
        "tickets/<str:ticket_id>/<str:action>",
        TicketActionView.as_view(),
        name="ticket-action",
    ),
]
