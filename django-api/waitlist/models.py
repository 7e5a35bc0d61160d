"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from waitlist.domain.models import (
    ActorKind,
    EventKind,
    PriorityClass,
    QueueStatus,
    TicketOrigin,
    TicketStatus,
)


def _choices(enum) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum]


class Tenant(models.Model):
    """Persistence model for venues."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    fast_lane_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    vip_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    no_show_warning_threshold = models.PositiveIntegerField(default=3)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Customer(models.Model):
    """Persistence model for app customers and their visit counters."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="customers")
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_vip = models.BooleanField(default=False)
    vip_since = models.DateTimeField(blank=True, null=True)
    is_blocked = models.BooleanField(default=False)
    blocked_reason = models.CharField(max_length=255, blank=True, null=True)
    total_visits = models.PositiveIntegerField(default=0)
    total_fast_lane = models.PositiveIntegerField(default=0)
    total_vip = models.PositiveIntegerField(default=0)
    total_no_shows = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "phone"]),
        ]

    def __str__(self) -> str:
        return self.name


class Queue(models.Model):
    """Persistence model for queues."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="queues")
    name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=10, choices=_choices(QueueStatus), default=QueueStatus.ACTIVE.value
    )
    max_concurrent = models.PositiveIntegerField(default=50)
    max_entries_per_day = models.PositiveIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.tenant.name} - {self.name}"


class Ticket(models.Model):
    """Persistence model for tickets. Rows are never deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="tickets")
    queue = models.ForeignKey(Queue, on_delete=models.PROTECT, related_name="tickets")
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="tickets",
        blank=True,
        null=True,
    )
    customer_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    origin = models.CharField(max_length=10, choices=_choices(TicketOrigin))
    number = models.CharField(max_length=32)
    sequence = models.PositiveIntegerField()
    service_day = models.DateField()
    priority = models.CharField(
        max_length=10, choices=_choices(PriorityClass), default=PriorityClass.NORMAL.value
    )
    status = models.CharField(
        max_length=10, choices=_choices(TicketStatus), default=TicketStatus.WAITING.value
    )
    party_size = models.PositiveIntegerField(default=1)
    priority_fee = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    arrived_at = models.DateTimeField()
    called_at = models.DateTimeField(blank=True, null=True)
    confirmed_at = models.DateTimeField(blank=True, null=True)
    serving_started_at = models.DateTimeField(blank=True, null=True)
    finished_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    no_show_count = models.PositiveIntegerField(default=0)
    recall_count = models.PositiveIntegerField(default=0)
    service_duration = models.PositiveIntegerField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["arrived_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["queue", "service_day", "sequence"],
                name="uniq_ticket_sequence_per_queue_day",
            ),
        ]
        indexes = [
            models.Index(fields=["queue", "status", "arrived_at"]),
            models.Index(fields=["queue", "status", "-finished_at"]),
            models.Index(fields=["tenant", "customer", "status"]),
            models.Index(fields=["tenant", "phone", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.number} ({self.status})"


class TicketEvent(models.Model):
    """Append-only audit trail of ticket lifecycle steps."""

    id = models.BigAutoField(primary_key=True)
    ticket = models.ForeignKey(Ticket, on_delete=models.PROTECT, related_name="events")
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="ticket_events")
    kind = models.CharField(max_length=20, choices=_choices(EventKind))
    actor_kind = models.CharField(max_length=10, choices=_choices(ActorKind))
    actor_id = models.CharField(max_length=64)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["ticket", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.ticket_id} {self.kind}"
