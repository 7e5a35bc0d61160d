"""Unit tests for the queue engine building blocks.

Allocator retries, rolling service-time estimate, position calculation and
the admission guard, all against the in-memory store.
Run with: pytest tests/test_engine.py -v
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta

import pytest

from fakes import T0, InMemoryQueueStore, make_queue, make_ticket
from waitlist.domain import (
    AdmissionIdentity,
    Capacity,
    Position,
    PriorityClass,
    QueueStatus,
    TicketOrigin,
    TicketStatus,
)
from waitlist.domain.errors import (
    QueueFullError,
    QueueNotAcceptingError,
    TicketNumberExhaustedError,
)
from waitlist.services import TicketService
from waitlist.services.admission import AdmissionGuard
from waitlist.services.allocator import TicketNumberAllocator
from waitlist.services.estimator import ServiceTimeEstimator
from waitlist.services.positions import PositionCalculator
from waitlist.stores.interfaces import DuplicateTicketNumber


class CollidingStore(InMemoryQueueStore):
    """Rejects the first `collisions` inserts as duplicates."""

    def __init__(self, collisions: int) -> None:
        super().__init__()
        self.collisions = collisions
        self.attempts = 0

    def insert_ticket(self, ticket):
        self.attempts += 1
        if self.attempts <= self.collisions:
            raise DuplicateTicketNumber(ticket.number)
        return super().insert_ticket(ticket)


def finished_ticket(queue, minutes, finished_offset):
    return make_ticket(
        tenant_id=queue.tenant_id,
        queue_id=queue.id,
        status=TicketStatus.FINISHED,
        service_duration=minutes,
        finished_at=T0 + timedelta(minutes=finished_offset),
    )


class TestTicketNumberAllocator:
    """Tests for TicketNumberAllocator."""

    def test_local_number_format(self):
        allocator = TicketNumberAllocator(InMemoryQueueStore(), prefix="B")

        assert allocator.format_number(7, TicketOrigin.LOCAL, T0) == "B-007"

    def test_remote_number_carries_timestamp_fragment(self):
        allocator = TicketNumberAllocator(InMemoryQueueStore())
        fragment = int(T0.timestamp() * 1000) % 10_000

        assert allocator.format_number(12, TicketOrigin.REMOTE, T0) == f"A-012-{fragment:04d}"

    def test_sequence_above_999_keeps_growing(self):
        allocator = TicketNumberAllocator(InMemoryQueueStore())

        assert allocator.format_number(1000, TicketOrigin.LOCAL, T0) == "A-1000"

    def test_retries_after_collision(self, tenant):
        """Two collisions, then success; backoff grows linearly."""
        store = CollidingStore(collisions=2)
        queue = make_queue(tenant)
        sleeps = []
        allocator = TicketNumberAllocator(store, backoff_seconds=0.1, sleep=sleeps.append)

        ticket = allocator.issue(
            queue.id,
            T0.date(),
            TicketOrigin.LOCAL,
            T0,
            lambda sequence, number: make_ticket(
                queue_id=queue.id, sequence=sequence, number=number
            ),
        )

        assert ticket.number == "A-001"
        assert store.attempts == 3
        assert sleeps == pytest.approx([0.1, 0.2])

    def test_exhaustion_after_max_attempts(self, tenant, caplog):
        store = CollidingStore(collisions=100)
        queue = make_queue(tenant)
        sleeps = []
        allocator = TicketNumberAllocator(store, max_attempts=5, sleep=sleeps.append)

        with caplog.at_level(logging.WARNING, logger="waitlist"):
            with pytest.raises(TicketNumberExhaustedError) as exc_info:
                allocator.issue(
                    queue.id,
                    T0.date(),
                    TicketOrigin.LOCAL,
                    T0,
                    lambda sequence, number: make_ticket(sequence=sequence, number=number),
                )

        assert exc_info.value.attempts == 5
        assert store.attempts == 5
        assert len(sleeps) == 4
        assert "Ticket number allocation exhausted" in caplog.text

    def test_concurrent_admissions_get_distinct_numbers(self, store, queue, staff, clock):
        """Five simultaneous walk-ins all succeed with unique numbers."""
        service = TicketService(
            store,
            allocator=TicketNumberAllocator(store, sleep=lambda seconds: None),
            clock=clock,
        )
        barrier = threading.Barrier(5)

        def admit(index):
            barrier.wait()
            return service.admit(queue.id.value, staff, customer_name=f"Guest {index}")

        with ThreadPoolExecutor(max_workers=5) as pool:
            tickets = list(pool.map(admit, range(5)))

        numbers = sorted(ticket.number for ticket in tickets)
        assert numbers == ["A-001", "A-002", "A-003", "A-004", "A-005"]
        assert store.inserts == 5


class TestServiceTimeEstimator:
    """Tests for ServiceTimeEstimator."""

    def test_default_without_history(self, store, queue):
        assert ServiceTimeEstimator(store).estimate(queue.id) == 15

    def test_mean_is_rounded_up(self, store, queue):
        store.save_ticket(finished_ticket(queue, 10, 1))
        store.save_ticket(finished_ticket(queue, 11, 2))

        assert ServiceTimeEstimator(store).estimate(queue.id) == 11

    def test_only_most_recent_samples_count(self, store, queue):
        store.save_ticket(finished_ticket(queue, 100, 0))
        for offset in range(1, 11):
            store.save_ticket(finished_ticket(queue, 5, offset))

        assert ServiceTimeEstimator(store, sample_size=10).estimate(queue.id) == 5

    def test_zero_mean_falls_back_to_default(self, store, queue):
        store.save_ticket(finished_ticket(queue, 0, 1))

        assert ServiceTimeEstimator(store, default_minutes=20).estimate(queue.id) == 20

    def test_other_queues_are_ignored(self, store, queue, tenant):
        other = store.add_queue(make_queue(tenant))
        store.save_ticket(finished_ticket(other, 3, 1))

        assert ServiceTimeEstimator(store).estimate(queue.id) == 15

    def test_estimate_is_not_cached(self, store, queue):
        estimator = ServiceTimeEstimator(store)
        assert estimator.estimate(queue.id) == 15

        store.save_ticket(finished_ticket(queue, 4, 1))

        assert estimator.estimate(queue.id) == 4


class TestPositionCalculator:
    """Tests for PositionCalculator."""

    @pytest.fixture
    def calculator(self, store):
        return PositionCalculator(store, ServiceTimeEstimator(store))

    def test_rank_times_estimate(self, calculator, store, queue):
        first = store.save_ticket(make_ticket(queue_id=queue.id, arrived_at=T0))
        second = store.save_ticket(
            make_ticket(queue_id=queue.id, arrived_at=T0 + timedelta(minutes=1))
        )

        assert calculator.position_and_eta(first) == Position(1, 15)
        assert calculator.position_and_eta(second) == Position(2, 30)

    def test_missing_waiting_ticket_is_logged(self, calculator, queue, caplog):
        """A waiting ticket absent from the ordered set yields (0, 0)."""
        ghost = make_ticket(queue_id=queue.id)

        with caplog.at_level(logging.WARNING, logger="waitlist"):
            assert calculator.position_and_eta(ghost) == Position.none()
        assert "Waiting ticket missing from ordered queue" in caplog.text

    def test_snapshot_covers_waiting_tickets_only(self, calculator, store, queue):
        vip = store.save_ticket(
            make_ticket(
                queue_id=queue.id,
                priority=PriorityClass.VIP,
                arrived_at=T0 + timedelta(minutes=5),
            )
        )
        normal = store.save_ticket(make_ticket(queue_id=queue.id, arrived_at=T0))
        store.save_ticket(make_ticket(queue_id=queue.id, status=TicketStatus.CALLED))

        assert calculator.snapshot(queue.id) == {
            vip.id: Position(1, 15),
            normal.id: Position(2, 30),
        }

    def test_snapshot_of_empty_queue(self, calculator, queue):
        assert calculator.snapshot(queue.id) == {}


class TestAdmissionGuard:
    """Tests for AdmissionGuard.can_admit."""

    def test_allows_open_queue(self, store, queue):
        assert AdmissionGuard(store).can_admit(queue, AdmissionIdentity(), T0.date()) is None

    def test_paused_checked_before_capacity(self, store, tenant):
        queue = make_queue(tenant, status=QueueStatus.PAUSED, max_concurrent=Capacity(0))

        reason = AdmissionGuard(store).can_admit(queue, AdmissionIdentity(), T0.date())

        assert isinstance(reason, QueueNotAcceptingError)

    def test_capacity_checked_before_identity(self, store, tenant, customer):
        queue = make_queue(tenant, max_concurrent=Capacity(1))
        store.save_ticket(make_ticket(queue_id=queue.id, tenant_id=tenant.id))
        store.add_customer(replace(customer, is_blocked=True))

        reason = AdmissionGuard(store).can_admit(
            queue, AdmissionIdentity(customer_id=customer.id), T0.date()
        )

        assert isinstance(reason, QueueFullError)
        assert reason.max_concurrent == 1
