"""Django ORM implementation of the QueueStore."""

from collections.abc import Callable, Collection
from contextlib import AbstractContextManager
from datetime import date

from django.db import IntegrityError, transaction
from django.db.models import F, Q

from waitlist import models as orm
from waitlist.domain import (
    ActorKind,
    AdmissionIdentity,
    Capacity,
    Customer,
    CustomerId,
    EventKind,
    Money,
    PriorityClass,
    Queue,
    QueueId,
    QueueStatus,
    Tenant,
    TenantId,
    Ticket,
    TicketEvent,
    TicketId,
    TicketOrigin,
    TicketStatus,
)
from waitlist.domain.models import TERMINAL_STATUSES
from waitlist.stores.interfaces import DuplicateTicketNumber, QueueStore

_MUTABLE_TICKET_FIELDS = (
    "status",
    "called_at",
    "confirmed_at",
    "serving_started_at",
    "finished_at",
    "cancelled_at",
    "no_show_count",
    "recall_count",
    "service_duration",
    "notes",
    "updated_at",
)


def _values(statuses: Collection[TicketStatus]) -> list[str]:
    return [status.value for status in statuses]


def _tenant_to_domain(row: orm.Tenant) -> Tenant:
    return Tenant(
        id=TenantId(row.id),
        name=row.name,
        slug=row.slug,
        fast_lane_fee=Money(row.fast_lane_fee),
        vip_fee=Money(row.vip_fee),
        no_show_warning_threshold=row.no_show_warning_threshold,
    )


def _queue_to_domain(row: orm.Queue) -> Queue:
    return Queue(
        id=QueueId(row.id),
        tenant_id=TenantId(row.tenant_id),
        name=row.name,
        status=QueueStatus(row.status),
        max_concurrent=Capacity(row.max_concurrent),
        max_entries_per_day=(
            Capacity(row.max_entries_per_day) if row.max_entries_per_day is not None else None
        ),
    )


def _customer_to_domain(row: orm.Customer) -> Customer:
    return Customer(
        id=CustomerId(row.id),
        tenant_id=TenantId(row.tenant_id),
        name=row.name,
        phone=row.phone,
        is_vip=row.is_vip,
        is_blocked=row.is_blocked,
        blocked_reason=row.blocked_reason,
        total_visits=row.total_visits,
        total_fast_lane=row.total_fast_lane,
        total_vip=row.total_vip,
        total_no_shows=row.total_no_shows,
    )


def _ticket_to_domain(row: orm.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        tenant_id=TenantId(row.tenant_id),
        queue_id=QueueId(row.queue_id),
        number=row.number,
        sequence=row.sequence,
        service_day=row.service_day,
        customer_name=row.customer_name,
        priority=PriorityClass(row.priority),
        status=TicketStatus(row.status),
        party_size=row.party_size,
        priority_fee=Money(row.priority_fee),
        origin=TicketOrigin(row.origin),
        arrived_at=row.arrived_at,
        customer_id=CustomerId(row.customer_id) if row.customer_id else None,
        phone=row.phone,
        called_at=row.called_at,
        confirmed_at=row.confirmed_at,
        serving_started_at=row.serving_started_at,
        finished_at=row.finished_at,
        cancelled_at=row.cancelled_at,
        no_show_count=row.no_show_count,
        recall_count=row.recall_count,
        service_duration=row.service_duration,
        notes=row.notes,
    )


def _event_to_domain(row: orm.TicketEvent) -> TicketEvent:
    return TicketEvent(
        ticket_id=TicketId(row.ticket_id),
        tenant_id=TenantId(row.tenant_id),
        kind=EventKind(row.kind),
        actor_kind=ActorKind(row.actor_kind),
        actor_id=row.actor_id,
        created_at=row.created_at,
        metadata=row.metadata,
    )


def _identity_filter(identity: AdmissionIdentity) -> Q:
    """Match by customer account or phone, whichever the identity carries."""
    if identity.customer_id is None:
        return Q(phone=identity.phone)
    matched = Q(customer_id=identity.customer_id.value)
    if identity.phone:
        matched |= Q(phone=identity.phone)
    return matched


class DjangoQueueStore(QueueStore):
    """Relational store backed by the Django ORM."""

    def __init__(self, using: str | None = None) -> None:
        self._using = using

    def atomic(self) -> AbstractContextManager:
        return transaction.atomic(using=self._using)

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback, using=self._using, robust=True)

    def get_tenant(self, tenant_id: TenantId) -> Tenant | None:
        row = orm.Tenant.objects.filter(id=tenant_id.value).first()
        return _tenant_to_domain(row) if row else None

    def get_queue(self, queue_id: QueueId, tenant_id: TenantId | None = None) -> Queue | None:
        rows = orm.Queue.objects.filter(id=queue_id.value)
        if tenant_id is not None:
            rows = rows.filter(tenant_id=tenant_id.value)
        row = rows.first()
        return _queue_to_domain(row) if row else None

    def get_customer(self, customer_id: CustomerId) -> Customer | None:
        row = orm.Customer.objects.filter(id=customer_id.value).first()
        return _customer_to_domain(row) if row else None

    def get_ticket(
        self,
        ticket_id: TicketId,
        tenant_id: TenantId | None = None,
        *,
        for_update: bool = False,
    ) -> Ticket | None:
        rows = orm.Ticket.objects.filter(id=ticket_id.value)
        if tenant_id is not None:
            rows = rows.filter(tenant_id=tenant_id.value)
        if for_update:
            rows = rows.select_for_update()
        row = rows.first()
        return _ticket_to_domain(row) if row else None

    def count_tickets(self, queue_id: QueueId, statuses: Collection[TicketStatus]) -> int:
        return orm.Ticket.objects.filter(
            queue_id=queue_id.value, status__in=_values(statuses)
        ).count()

    def count_tickets_created_on(self, queue_id: QueueId, day: date) -> int:
        return orm.Ticket.objects.filter(queue_id=queue_id.value, service_day=day).count()

    def count_open_tickets_for(self, tenant_id: TenantId, identity: AdmissionIdentity) -> int:
        return (
            orm.Ticket.objects.filter(tenant_id=tenant_id.value)
            .filter(_identity_filter(identity))
            .exclude(status__in=_values(TERMINAL_STATUSES))
            .count()
        )

    def count_entries_for(
        self, queue_id: QueueId, identity: AdmissionIdentity, day: date
    ) -> int:
        return (
            orm.Ticket.objects.filter(queue_id=queue_id.value, service_day=day)
            .filter(_identity_filter(identity))
            .count()
        )

    def insert_ticket(self, ticket: Ticket) -> Ticket:
        try:
            # Savepoint so a collision leaves the outer transaction usable.
            with transaction.atomic(using=self._using):
                row = orm.Ticket.objects.create(
                    id=ticket.id.value,
                    tenant_id=ticket.tenant_id.value,
                    queue_id=ticket.queue_id.value,
                    customer_id=ticket.customer_id.value if ticket.customer_id else None,
                    customer_name=ticket.customer_name,
                    phone=ticket.phone,
                    origin=ticket.origin.value,
                    number=ticket.number,
                    sequence=ticket.sequence,
                    service_day=ticket.service_day,
                    priority=ticket.priority.value,
                    status=ticket.status.value,
                    party_size=ticket.party_size,
                    priority_fee=ticket.priority_fee.amount,
                    arrived_at=ticket.arrived_at,
                    notes=ticket.notes,
                )
        except IntegrityError as exc:
            # Only a taken (queue, day, sequence) slot is retryable.
            taken = orm.Ticket.objects.filter(
                queue_id=ticket.queue_id.value,
                service_day=ticket.service_day,
                sequence=ticket.sequence,
            ).exists()
            if not taken:
                raise
            raise DuplicateTicketNumber(ticket.number) from exc
        return _ticket_to_domain(row)

    def save_ticket(self, ticket: Ticket) -> Ticket:
        row = orm.Ticket.objects.get(id=ticket.id.value)
        row.status = ticket.status.value
        row.called_at = ticket.called_at
        row.confirmed_at = ticket.confirmed_at
        row.serving_started_at = ticket.serving_started_at
        row.finished_at = ticket.finished_at
        row.cancelled_at = ticket.cancelled_at
        row.no_show_count = ticket.no_show_count
        row.recall_count = ticket.recall_count
        row.service_duration = ticket.service_duration
        row.notes = ticket.notes
        row.save(update_fields=_MUTABLE_TICKET_FIELDS)
        return _ticket_to_domain(row)

    def list_tickets(
        self, queue_id: QueueId, statuses: Collection[TicketStatus]
    ) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(
            queue_id=queue_id.value, status__in=_values(statuses)
        ).order_by("arrived_at", "id")
        return [_ticket_to_domain(row) for row in rows]

    def search_history(
        self,
        queue_id: QueueId,
        statuses: Collection[TicketStatus],
        search: str | None,
        offset: int,
        limit: int,
    ) -> tuple[list[Ticket], int]:
        rows = orm.Ticket.objects.filter(queue_id=queue_id.value, status__in=_values(statuses))
        if search:
            rows = rows.filter(
                Q(customer_name__icontains=search)
                | Q(phone__contains=search)
                | Q(number__icontains=search)
            )
        total = rows.count()
        page = rows.order_by("-arrived_at", "-id")[offset : offset + limit]
        return [_ticket_to_domain(row) for row in page], total

    def recent_service_durations(self, queue_id: QueueId, limit: int) -> list[int]:
        return list(
            orm.Ticket.objects.filter(
                queue_id=queue_id.value,
                status=TicketStatus.FINISHED.value,
                service_duration__isnull=False,
            )
            .order_by("-finished_at")
            .values_list("service_duration", flat=True)[:limit]
        )

    def append_event(self, event: TicketEvent) -> TicketEvent:
        row = orm.TicketEvent.objects.create(
            ticket_id=event.ticket_id.value,
            tenant_id=event.tenant_id.value,
            kind=event.kind.value,
            actor_kind=event.actor_kind.value,
            actor_id=event.actor_id,
            metadata=event.metadata,
            created_at=event.created_at,
        )
        return _event_to_domain(row)

    def list_events(self, ticket_id: TicketId) -> list[TicketEvent]:
        rows = orm.TicketEvent.objects.filter(ticket_id=ticket_id.value).order_by(
            "created_at", "id"
        )
        return [_event_to_domain(row) for row in rows]

    def increment_customer_counters(
        self,
        customer_id: CustomerId,
        *,
        visits: int = 0,
        fast_lane: int = 0,
        vip: int = 0,
        no_shows: int = 0,
    ) -> Customer | None:
        updated = orm.Customer.objects.filter(id=customer_id.value).update(
            total_visits=F("total_visits") + visits,
            total_fast_lane=F("total_fast_lane") + fast_lane,
            total_vip=F("total_vip") + vip,
            total_no_shows=F("total_no_shows") + no_shows,
        )
        if not updated:
            return None
        return self.get_customer(customer_id)
