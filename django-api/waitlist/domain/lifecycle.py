"""Ticket lifecycle state machine.

Every legal move lives in TRANSITIONS; anything not listed there raises
InvalidTransitionError. Each rule also names the actor kinds allowed to
perform it. `apply` is pure: it returns the updated ticket and
leaves persistence, events and customer counters to the service layer.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from waitlist.domain.errors import InvalidTransitionError
from waitlist.domain.models import ActorKind, EventKind, Ticket, TicketStatus

WAITING = TicketStatus.WAITING
CALLED = TicketStatus.CALLED
CONFIRMED = TicketStatus.CONFIRMED
SERVING = TicketStatus.SERVING

STAFF_ONLY = frozenset({ActorKind.STAFF, ActorKind.ADMIN})


class Transition(str, Enum):
    CALL = "call"
    CONFIRM_PRESENCE = "confirm_presence"
    START_SERVICE = "start_service"
    SKIP = "skip"
    RECALL = "recall"
    MARK_NO_SHOW = "mark_no_show"
    FINISH = "finish"
    CANCEL_BY_CUSTOMER = "cancel_by_customer"
    CANCEL_BY_STAFF = "cancel_by_staff"


@dataclass(frozen=True)
class Rule:
    sources: frozenset[TicketStatus]
    target: TicketStatus | None  # None keeps the current status
    event: EventKind
    actors: frozenset[ActorKind] = STAFF_ONLY


TRANSITIONS: dict[Transition, Rule] = {
    Transition.CALL: Rule(frozenset({WAITING}), CALLED, EventKind.CALLED),
    Transition.CONFIRM_PRESENCE: Rule(
        frozenset({CALLED}), CONFIRMED, EventKind.CONFIRMED
    ),
    Transition.START_SERVICE: Rule(
        frozenset({CALLED, CONFIRMED}), SERVING, EventKind.SERVICE_STARTED
    ),
    Transition.SKIP: Rule(frozenset({CALLED, CONFIRMED}), WAITING, EventKind.SKIPPED),
    Transition.RECALL: Rule(frozenset({CALLED, CONFIRMED}), None, EventKind.RECALLED),
    Transition.MARK_NO_SHOW: Rule(
        frozenset({CALLED, CONFIRMED}), TicketStatus.NO_SHOW, EventKind.NO_SHOW
    ),
    Transition.FINISH: Rule(
        frozenset({CALLED, CONFIRMED, SERVING}), TicketStatus.FINISHED, EventKind.FINISHED
    ),
    Transition.CANCEL_BY_CUSTOMER: Rule(
        frozenset({WAITING, CALLED, CONFIRMED}),
        TicketStatus.CANCELLED,
        EventKind.CANCELLED,
        frozenset({ActorKind.CUSTOMER}),
    ),
    Transition.CANCEL_BY_STAFF: Rule(
        frozenset({WAITING, CALLED, CONFIRMED, SERVING}),
        TicketStatus.CANCELLED,
        EventKind.CANCELLED,
    ),
}


def allowed(ticket: Ticket, transition: Transition) -> bool:
    return ticket.status in TRANSITIONS[transition].sources


def permits(transition: Transition, kind: ActorKind) -> bool:
    return kind in TRANSITIONS[transition].actors


def service_duration_minutes(ticket: Ticket, finished_at: datetime) -> int:
    """Whole minutes (rounded up) from the start of service to `finished_at`.

    Service starts when presence is confirmed, or when the ticket was called if
    it never was confirmed. Without either stamp the duration is zero.
    """
    started_at = ticket.confirmed_at or ticket.called_at
    if started_at is None:
        return 0
    minutes = math.ceil((finished_at - started_at).total_seconds() / 60)
    return max(0, minutes)


def apply(ticket: Ticket, transition: Transition, now: datetime) -> Ticket:
    """Return `ticket` moved through `transition` at time `now`."""
    rule = TRANSITIONS[transition]
    if ticket.status not in rule.sources:
        raise InvalidTransitionError(transition.value, ticket.status.value)

    # Stamps are never earlier than arrival, even with a skewed clock.
    now = max(now, ticket.arrived_at)
    status = rule.target or ticket.status

    if transition is Transition.CALL:
        return replace(ticket, status=status, called_at=now)
    if transition is Transition.CONFIRM_PRESENCE:
        return replace(ticket, status=status, confirmed_at=now)
    if transition is Transition.START_SERVICE:
        return replace(ticket, status=status, serving_started_at=now)
    if transition is Transition.SKIP:
        # Back to the line at the original arrival time.
        return replace(ticket, status=status, called_at=None, confirmed_at=None)
    if transition is Transition.RECALL:
        return replace(ticket, recall_count=ticket.recall_count + 1)
    if transition is Transition.MARK_NO_SHOW:
        return replace(ticket, status=status, no_show_count=ticket.no_show_count + 1)
    if transition is Transition.FINISH:
        return replace(
            ticket,
            status=status,
            finished_at=now,
            service_duration=service_duration_minutes(ticket, now),
        )
    return replace(ticket, status=status, cancelled_at=now)
