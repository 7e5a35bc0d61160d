"""Django signals carrying queue changes to observers.

Receivers (socket fan-out, push notifications, ...) live outside the engine.
Signals are sent after the transaction commits and a failing receiver is
logged without affecting the ticket.
"""

import logging

from django.dispatch import Signal

from waitlist.domain import Position, QueueId, TicketId
from waitlist.domain.events import TicketStatusChanged

logger = logging.getLogger(__name__)

# Sent with `payload`: TicketStatusChanged.
ticket_status_changed = Signal()

# Sent with `queue_id` and `positions`: dict[TicketId, Position].
queue_positions_changed = Signal()


def _send(signal: Signal, sender: object, **kwargs) -> None:
    for receiver, response in signal.send_robust(sender=sender, **kwargs):
        if isinstance(response, Exception):
            logger.error(
                "Queue observer failed",
                exc_info=response,
                extra={"receiver": getattr(receiver, "__qualname__", repr(receiver))},
            )


def publish_status_change(sender: object, payload: TicketStatusChanged) -> None:
    _send(ticket_status_changed, sender, payload=payload)


def publish_positions(
    sender: object, queue_id: QueueId, positions: dict[TicketId, Position]
) -> None:
    _send(queue_positions_changed, sender, queue_id=queue_id, positions=positions)
