"""Ticket service - all business logic lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Every public mutation is one unit of work: it locks or inserts one ticket,
appends exactly one TicketEvent and, for finish and no-show, updates one
customer. Observers are notified once the unit of work commits.
"""

import logging
from collections.abc import Callable, Collection
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from django.utils import timezone

from waitlist.domain import (
    Actor,
    ActorKind,
    AdmissionIdentity,
    EventKind,
    Page,
    PartySize,
    Position,
    PriorityClass,
    Queue,
    QueueEntry,
    QueueId,
    Ticket,
    TicketEvent,
    TicketId,
    TicketOrigin,
    TicketStatus,
)
from waitlist.domain import lifecycle
from waitlist.domain.errors import (
    ActionNotAllowedError,
    CustomerNotFoundError,
    QueueNotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from waitlist.domain.events import TicketStatusChanged, TicketTransitioned
from waitlist.domain.fees import priority_fee
from waitlist.domain.lifecycle import Transition
from waitlist.domain.models import OCCUPYING_STATUSES, TERMINAL_STATUSES
from waitlist.domain.ordering import order_tickets
from waitlist.services.admission import AdmissionGuard
from waitlist.services.allocator import TicketNumberAllocator
from waitlist.services.customers import CustomerAggregateUpdater
from waitlist.services.estimator import ServiceTimeEstimator
from waitlist.services.positions import PositionCalculator
from waitlist.signals import publish_positions, publish_status_change
from waitlist.stores.interfaces import QueueStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _parse_uuid(value: str | UUID, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid {label} ID format") from exc


def _parse_priority(value: str | PriorityClass) -> PriorityClass:
    try:
        return PriorityClass(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown priority class: {value}") from exc


def _clamp_page(page: int, limit: int) -> tuple[int, int]:
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


class TicketService:
    """Queue engine entry point: admission, lifecycle actions and queries."""

    def __init__(
        self,
        store: QueueStore,
        *,
        estimator: ServiceTimeEstimator | None = None,
        allocator: TicketNumberAllocator | None = None,
        guard: AdmissionGuard | None = None,
        customers: CustomerAggregateUpdater | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._store = store
        self._estimator = estimator or ServiceTimeEstimator(store)
        self._positions = PositionCalculator(store, self._estimator)
        self._allocator = allocator or TicketNumberAllocator(store)
        self._guard = guard or AdmissionGuard(store)
        self._customers = customers or CustomerAggregateUpdater(store)
        self._clock = clock

    # -------------------- admission --------------------

    def admit(
        self,
        queue_id: str | UUID,
        actor: Actor,
        *,
        priority: str | PriorityClass = PriorityClass.NORMAL,
        party_size: int = 1,
        customer_name: str | None = None,
        phone: str | None = None,
        notes: str | None = None,
    ) -> Ticket:
        """Issue a WAITING ticket in the queue.

        Customers joining from the app are identified by their account; staff
        admitting a walk-in supply a name and, optionally, a phone number.

        Raises:
            ValidationError: On malformed ids, priority, party size or name.
            QueueNotFoundError: If the queue is not in the actor's tenant.
            CustomerNotFoundError: If the customer account is not in the tenant.
            AdmissionError: If the queue refuses the ticket.
            TicketNumberExhaustedError: If no ticket number could be issued.
        """
        qid = QueueId(_parse_uuid(queue_id, "queue"))
        priority = _parse_priority(priority)
        try:
            size = PartySize(party_size)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        now = self._clock()
        day = timezone.localdate(now)

        with self._store.atomic():
            queue = self._store.get_queue(qid, actor.tenant_id)
            tenant = self._store.get_tenant(actor.tenant_id)
            if queue is None or tenant is None:
                raise QueueNotFoundError(str(qid))

            customer = None
            if actor.kind is ActorKind.CUSTOMER:
                customer = (
                    self._store.get_customer(actor.customer_id) if actor.customer_id else None
                )
                if customer is None or customer.tenant_id != actor.tenant_id:
                    raise CustomerNotFoundError(str(actor.customer_id))
                identity = AdmissionIdentity(customer_id=customer.id, phone=customer.phone or None)
                customer_name, phone = customer.name, customer.phone
                origin = TicketOrigin.REMOTE
            else:
                if not customer_name or not customer_name.strip():
                    raise ValidationError("Customer name is required")
                identity = AdmissionIdentity(phone=phone or None)
                origin = TicketOrigin.LOCAL

            self._guard.ensure_can_admit(queue, identity, day)

            is_loyal = customer is not None and customer.is_vip
            fee = priority_fee(tenant, priority, is_loyal)
            ticket_id = TicketId(uuid4())

            def build(sequence: int, number: str) -> Ticket:
                return Ticket(
                    id=ticket_id,
                    tenant_id=queue.tenant_id,
                    queue_id=queue.id,
                    number=number,
                    sequence=sequence,
                    service_day=day,
                    customer_name=customer_name.strip(),
                    priority=priority,
                    status=TicketStatus.WAITING,
                    party_size=size.value,
                    priority_fee=fee,
                    origin=origin,
                    arrived_at=now,
                    customer_id=customer.id if customer else None,
                    phone=phone or None,
                    notes=notes,
                )

            ticket = self._allocator.issue(queue.id, day, origin, now, build)
            self._record(
                ticket,
                EventKind.CREATED,
                actor,
                now,
                {
                    "number": ticket.number,
                    "priority": priority.value,
                    "priority_fee": str(fee),
                    "party_size": size.value,
                    "origin": origin.value,
                    "is_vip": is_loyal,
                },
            )
            self._notify_after_commit(TicketTransitioned(None, ticket, now))

        logger.info(
            "Ticket created",
            extra={"ticket_id": str(ticket.id), "queue_id": str(qid), "number": ticket.number},
        )
        return ticket

    # -------------------- lifecycle --------------------

    def call(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.CALL)

    def confirm_presence(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.CONFIRM_PRESENCE)

    def start_service(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.START_SERVICE)

    def skip(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.SKIP)

    def recall(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.RECALL)

    def mark_no_show(self, ticket_id: str | UUID, actor: Actor) -> Ticket:
        return self._transition(ticket_id, actor, Transition.MARK_NO_SHOW)

    def finish(self, ticket_id: str | UUID, actor: Actor, notes: str | None = None) -> Ticket:
        """Close the service. Any priority fee is taken as settled at the venue."""
        return self._transition(ticket_id, actor, Transition.FINISH, notes=notes)

    def cancel(self, ticket_id: str | UUID, actor: Actor, reason: str | None = None) -> Ticket:
        """Cancel on behalf of the ticket's customer, or of staff with an optional reason."""
        if actor.kind is ActorKind.CUSTOMER:
            return self._transition(ticket_id, actor, Transition.CANCEL_BY_CUSTOMER)
        return self._transition(ticket_id, actor, Transition.CANCEL_BY_STAFF, notes=reason)

    def _transition(
        self,
        ticket_id: str | UUID,
        actor: Actor,
        transition: Transition,
        *,
        notes: str | None = None,
    ) -> Ticket:
        tid = TicketId(_parse_uuid(ticket_id, "ticket"))
        now = self._clock()

        with self._store.atomic():
            before = self._store.get_ticket(tid, actor.tenant_id, for_update=True)
            if before is None or not self._can_see(actor, before):
                raise TicketNotFoundError(str(tid))
            if not lifecycle.permits(transition, actor.kind):
                raise ActionNotAllowedError(transition.value, actor.kind.value)

            after = lifecycle.apply(before, transition, now)
            if notes:
                after = replace(after, notes=notes)
            after = self._store.save_ticket(after)

            rule = lifecycle.TRANSITIONS[transition]
            metadata = self._metadata(transition, after, actor, notes)
            self._record(after, rule.event, actor, now, metadata)

            event = TicketTransitioned(before, after, now)
            self._customers.handle(event)
            self._notify_after_commit(event)

        logger.info(
            "Ticket %s",
            transition.value,
            extra={
                "ticket_id": str(tid),
                "actor_id": actor.actor_id,
                "status": after.status.value,
            },
        )
        return after

    @staticmethod
    def _can_see(actor: Actor, ticket: Ticket) -> bool:
        if actor.kind is ActorKind.CUSTOMER:
            return actor.customer_id is not None and ticket.customer_id == actor.customer_id
        return True

    @staticmethod
    def _metadata(
        transition: Transition, ticket: Ticket, actor: Actor, notes: str | None
    ) -> dict[str, Any]:
        if transition is Transition.FINISH:
            return {
                "service_duration": ticket.service_duration,
                "priority_fee": str(ticket.priority_fee),
                "payment_confirmed": True,
            }
        if transition is Transition.RECALL:
            return {"recall_count": ticket.recall_count}
        if transition is Transition.MARK_NO_SHOW:
            return {"no_show_count": ticket.no_show_count}
        if transition is Transition.CANCEL_BY_STAFF:
            return {"cancelled_by": actor.kind.value, "reason": notes}
        if transition is Transition.CANCEL_BY_CUSTOMER:
            return {"cancelled_by": ActorKind.CUSTOMER.value}
        return {}

    def _record(
        self,
        ticket: Ticket,
        kind: EventKind,
        actor: Actor,
        now: datetime,
        metadata: dict[str, Any],
    ) -> None:
        self._store.append_event(
            TicketEvent(
                ticket_id=ticket.id,
                tenant_id=ticket.tenant_id,
                kind=kind,
                actor_kind=actor.kind,
                actor_id=actor.actor_id,
                created_at=now,
                metadata=metadata,
            )
        )

    def _notify_after_commit(self, event: TicketTransitioned) -> None:
        payload = TicketStatusChanged.from_transition(event)
        queue_id = event.after.queue_id
        refresh_positions = event.waiting_set_changed

        def notify() -> None:
            publish_status_change(self, payload)
            if refresh_positions:
                publish_positions(self, queue_id, self._positions.snapshot(queue_id))

        self._store.on_commit(notify)

    # -------------------- queries --------------------

    def get_ticket(self, ticket_id: str | UUID, actor: Actor | None = None) -> Ticket:
        """Return a ticket, scoped to the actor's tenant when an actor is given."""
        tid = TicketId(_parse_uuid(ticket_id, "ticket"))
        ticket = self._store.get_ticket(tid, actor.tenant_id if actor else None)
        if ticket is None or (actor is not None and not self._can_see(actor, ticket)):
            raise TicketNotFoundError(str(tid))
        return ticket

    def position_and_eta(self, ticket_id: str | UUID, actor: Actor | None = None) -> Position:
        return self._positions.position_and_eta(self.get_ticket(ticket_id, actor))

    def list_events(self, ticket_id: str | UUID, actor: Actor) -> list[TicketEvent]:
        ticket = self.get_ticket(ticket_id, actor)
        return self._store.list_events(ticket.id)

    def list_active(
        self, queue_id: str | UUID, actor: Actor, *, page: int = 1, limit: int = 10
    ) -> Page:
        """Tickets still in play, in service order, with live positions."""
        queue = self._get_queue(queue_id, actor)
        page, limit = _clamp_page(page, limit)

        ordered = order_tickets(self._store.list_tickets(queue.id, OCCUPYING_STATUSES))
        positions = self._positions.snapshot(queue.id)
        offset = (page - 1) * limit
        entries = tuple(
            QueueEntry(ticket=ticket, position=positions.get(ticket.id, Position.none()))
            for ticket in ordered[offset : offset + limit]
        )
        return Page(items=entries, total=len(ordered), page=page, limit=limit)

    def list_history(
        self,
        queue_id: str | UUID,
        actor: Actor,
        *,
        statuses: Collection[str | TicketStatus] | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        """Finished, cancelled and no-show tickets, newest first.

        Requested statuses that are not terminal are ignored.
        """
        queue = self._get_queue(queue_id, actor)
        page, limit = _clamp_page(page, limit)

        wanted = set(TERMINAL_STATUSES)
        if statuses:
            requested = set()
            for status in statuses:
                try:
                    requested.add(TicketStatus(status))
                except ValueError as exc:
                    raise ValidationError(f"Unknown ticket status: {status}") from exc
            wanted = (requested & TERMINAL_STATUSES) or wanted

        tickets, total = self._store.search_history(
            queue.id, wanted, search or None, (page - 1) * limit, limit
        )
        return Page(items=tuple(tickets), total=total, page=page, limit=limit)

    def _get_queue(self, queue_id: str | UUID, actor: Actor) -> Queue:
        qid = QueueId(_parse_uuid(queue_id, "queue"))
        queue = self._store.get_queue(qid, actor.tenant_id)
        if queue is None:
            raise QueueNotFoundError(str(qid))
        return queue
