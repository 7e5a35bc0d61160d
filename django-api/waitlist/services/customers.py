"""Customer aggregate counters, driven by ticket lifecycle events."""

import logging

from waitlist.domain import PriorityClass, Ticket, TicketStatus
from waitlist.domain.events import TicketTransitioned
from waitlist.stores.interfaces import QueueStore

logger = logging.getLogger(__name__)


class CustomerAggregateUpdater:
    """Updates visit and no-show counters of the ticket's customer.

    Runs inside the transition's unit of work. Anonymous walk-ins have no
    counters to update; their no-shows are checked against the tenant's
    warning threshold using the ticket's own count.
    """

    def __init__(self, store: QueueStore) -> None:
        self._store = store

    def handle(self, event: TicketTransitioned) -> None:
        ticket = event.after
        if event.before is None or event.before.status is ticket.status:
            return

        if ticket.status is TicketStatus.FINISHED and ticket.customer_id is not None:
            self._store.increment_customer_counters(
                ticket.customer_id,
                visits=1,
                fast_lane=1 if ticket.priority is PriorityClass.FAST_LANE else 0,
                vip=1 if ticket.priority is PriorityClass.VIP else 0,
            )
        elif ticket.status is TicketStatus.NO_SHOW:
            self._record_no_show(ticket)

    def _record_no_show(self, ticket: Ticket) -> None:
        if ticket.customer_id is None:
            no_shows = ticket.no_show_count
        else:
            customer = self._store.increment_customer_counters(ticket.customer_id, no_shows=1)
            if customer is None:
                return
            no_shows = customer.total_no_shows

        tenant = self._store.get_tenant(ticket.tenant_id)
        if tenant and no_shows >= tenant.no_show_warning_threshold:
            logger.warning(
                "Customer reached the no-show warning threshold",
                extra={
                    "ticket_id": str(ticket.id),
                    "customer_id": str(ticket.customer_id) if ticket.customer_id else None,
                    "total_no_shows": no_shows,
                },
            )
