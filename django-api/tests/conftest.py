"""Pytest configuration and shared fixtures."""

from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from fakes import FakeClock, InMemoryQueueStore, make_customer, make_queue, make_tenant
from waitlist import models as orm
from waitlist.domain import Actor, ActorKind, Customer, Queue, Tenant
from waitlist.services import TicketService
from waitlist.services.allocator import TicketNumberAllocator


# -------------------- service-level (no database) --------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryQueueStore:
    return InMemoryQueueStore()


@pytest.fixture
def tenant(store: InMemoryQueueStore) -> Tenant:
    return store.add_tenant(make_tenant())


@pytest.fixture
def queue(store: InMemoryQueueStore, tenant: Tenant) -> Queue:
    return store.add_queue(make_queue(tenant))


@pytest.fixture
def customer(store: InMemoryQueueStore, tenant: Tenant) -> Customer:
    return store.add_customer(make_customer(tenant))


@pytest.fixture
def staff(tenant: Tenant) -> Actor:
    return Actor(tenant_id=tenant.id, kind=ActorKind.STAFF, actor_id="staff-1")


@pytest.fixture
def app_actor(tenant: Tenant, customer: Customer) -> Actor:
    return Actor(
        tenant_id=tenant.id,
        kind=ActorKind.CUSTOMER,
        actor_id="user-1",
        customer_id=customer.id,
    )


@pytest.fixture
def service(store: InMemoryQueueStore, clock: FakeClock) -> TicketService:
    allocator = TicketNumberAllocator(store, sleep=lambda seconds: None)
    return TicketService(store, allocator=allocator, clock=clock)


# -------------------- HTTP level (database) --------------------


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def db_tenant(db) -> orm.Tenant:
    return orm.Tenant.objects.create(
        name="Barbearia Centro",
        slug="barbearia-centro",
        fast_lane_fee=Decimal("10.00"),
        vip_fee=Decimal("25.00"),
    )


@pytest.fixture
def db_queue(db_tenant: orm.Tenant) -> orm.Queue:
    return orm.Queue.objects.create(tenant=db_tenant, name="Main chair", max_concurrent=50)


@pytest.fixture
def db_customer(db_tenant: orm.Tenant) -> orm.Customer:
    return orm.Customer.objects.create(
        tenant=db_tenant, name="Ana Souza", phone="+5511999990000"
    )

