"""Live position and ETA of waiting tickets."""

import logging

from waitlist.domain import Position, QueueId, Ticket, TicketId, TicketStatus
from waitlist.domain.ordering import order_tickets
from waitlist.services.estimator import ServiceTimeEstimator
from waitlist.stores.interfaces import QueueStore

logger = logging.getLogger(__name__)


class PositionCalculator:
    """Ranks the waiting set of a queue and turns ranks into ETAs.

    Results are advisory: two concurrent reads may disagree if a ticket moves
    between them.
    """

    def __init__(self, store: QueueStore, estimator: ServiceTimeEstimator) -> None:
        self._store = store
        self._estimator = estimator

    def position_and_eta(self, ticket: Ticket) -> Position:
        if ticket.status is not TicketStatus.WAITING:
            return Position.none()

        ordered = order_tickets(self._store.list_tickets(ticket.queue_id, [TicketStatus.WAITING]))
        rank = next(
            (index for index, waiting in enumerate(ordered, start=1) if waiting.id == ticket.id),
            0,
        )
        if rank == 0:
            logger.warning(
                "Waiting ticket missing from ordered queue",
                extra={"ticket_id": str(ticket.id), "queue_id": str(ticket.queue_id)},
            )
            return Position.none()

        return Position(position=rank, eta_minutes=rank * self._estimator.estimate(ticket.queue_id))

    def snapshot(self, queue_id: QueueId) -> dict[TicketId, Position]:
        """Position of every waiting ticket in the queue, using one estimate."""
        ordered = order_tickets(self._store.list_tickets(queue_id, [TicketStatus.WAITING]))
        if not ordered:
            return {}
        minutes = self._estimator.estimate(queue_id)
        return {
            ticket.id: Position(position=rank, eta_minutes=rank * minutes)
            for rank, ticket in enumerate(ordered, start=1)
        }
