"""Priority ordering of waiting tickets.

Tickets are ranked by priority class (VIP, then FAST_LANE, then NORMAL) and
then by arrival time, oldest first. The ticket id breaks any remaining tie so
the order is identical across recomputations.
"""

from collections.abc import Iterable
from datetime import datetime

from waitlist.domain.models import Ticket


def ordering_key(ticket: Ticket) -> tuple[int, datetime, str]:
    return (ticket.priority.rank, ticket.arrived_at, str(ticket.id))


def compare(a: Ticket, b: Ticket) -> int:
    """Return a negative number if `a` is served before `b`, positive if after."""
    key_a, key_b = ordering_key(a), ordering_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def order_tickets(tickets: Iterable[Ticket]) -> list[Ticket]:
    return sorted(tickets, key=ordering_key)
