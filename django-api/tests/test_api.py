"""Integration tests for the waitlist HTTP API.

Requests carry the caller identity in the X-Tenant-Id, X-Actor-Kind,
X-Actor-Id and X-Customer-Id headers set by the upstream auth layer.
Run with: pytest tests/test_api.py -v
"""

import uuid

import pytest
from rest_framework.test import APIClient

from fakes import customer_headers, staff_headers
from waitlist import models as orm
from waitlist.domain.errors import ActionNotAllowedError
from waitlist.handlers.views import error_response


def admit(api_client, queue, headers, **body):
    return api_client.post(
        f"/api/queues/{queue.id}/tickets", body, format="json", **headers
    )


def act(api_client, ticket_id, action, headers, **body):
    return api_client.post(f"/api/tickets/{ticket_id}/{action}", body, format="json", **headers)


@pytest.mark.django_db
class TestAdmitTicket:
    """Tests for POST /api/queues/{queue_id}/tickets"""

    def test_staff_admits_walk_in(self, api_client: APIClient, db_tenant, db_queue):
        """Given an open queue, returns the ticket with its position."""
        response = admit(api_client, db_queue, staff_headers(db_tenant), customer_name="Bruno")

        assert response.status_code == 201
        body = response.json()
        assert body["ticket"]["number"] == "A-001"
        assert body["ticket"]["status"] == "WAITING"
        assert body["ticket"]["origin"] == "LOCAL"
        assert body["ticket"]["priority_fee"] == "0.00"
        assert (body["position"], body["eta_minutes"]) == (1, 15)

    def test_customer_joins_from_app(self, api_client: APIClient, db_queue, db_customer):
        response = admit(api_client, db_queue, customer_headers(db_customer), priority="FAST_LANE")

        assert response.status_code == 201
        ticket = response.json()["ticket"]
        assert ticket["origin"] == "REMOTE"
        assert ticket["customer_name"] == "Ana Souza"
        assert ticket["priority_fee"] == "10.00"

    def test_duplicate_active_ticket(self, api_client: APIClient, db_queue, db_customer):
        admit(api_client, db_queue, customer_headers(db_customer))

        response = admit(api_client, db_queue, customer_headers(db_customer))

        assert response.status_code == 409
        assert response.json()["code"] == "ACTIVE_TICKET_EXISTS"

    def test_queue_full(self, api_client: APIClient, db_tenant, db_queue):
        db_queue.max_concurrent = 1
        db_queue.save()
        admit(api_client, db_queue, staff_headers(db_tenant), customer_name="First")

        response = admit(api_client, db_queue, staff_headers(db_tenant), customer_name="Second")

        assert response.status_code == 409
        assert response.json()["code"] == "QUEUE_FULL"

    def test_paused_queue(self, api_client: APIClient, db_tenant, db_queue):
        db_queue.status = "PAUSED"
        db_queue.save()

        response = admit(api_client, db_queue, staff_headers(db_tenant), customer_name="Bruno")

        assert response.status_code == 409
        assert response.json()["code"] == "QUEUE_NOT_ACCEPTING"

    def test_blocked_customer(self, api_client: APIClient, db_queue, db_customer):
        db_customer.is_blocked = True
        db_customer.save()

        response = admit(api_client, db_queue, customer_headers(db_customer))

        assert response.status_code == 409
        assert response.json()["code"] == "CUSTOMER_BLOCKED"

    def test_unknown_queue(self, api_client: APIClient, db_tenant):
        response = api_client.post(
            f"/api/queues/{uuid.uuid4()}/tickets",
            {"customer_name": "Bruno"},
            format="json",
            **staff_headers(db_tenant),
        )

        assert response.status_code == 404
        assert response.json()["code"] == "QUEUE_NOT_FOUND"

    def test_invalid_queue_id(self, api_client: APIClient, db_tenant):
        response = api_client.post(
            "/api/queues/not-a-uuid/tickets",
            {"customer_name": "Bruno"},
            format="json",
            **staff_headers(db_tenant),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_party_size_out_of_range(self, api_client: APIClient, db_tenant, db_queue):
        response = admit(
            api_client, db_queue, staff_headers(db_tenant), customer_name="Bruno", party_size=51
        )

        assert response.status_code == 400

    def test_missing_identity_headers(self, api_client: APIClient, db_queue):
        response = admit(api_client, db_queue, {}, customer_name="Bruno")

        assert response.status_code == 403


@pytest.mark.django_db
class TestTicketActions:
    """Tests for POST /api/tickets/{ticket_id}/{action}"""

    @pytest.fixture
    def ticket_id(self, api_client: APIClient, db_tenant, db_queue):
        response = admit(api_client, db_queue, staff_headers(db_tenant), customer_name="Bruno")
        return response.json()["ticket"]["id"]

    def test_call_confirm_finish(self, api_client: APIClient, db_tenant, ticket_id):
        headers = staff_headers(db_tenant)

        statuses = [
            act(api_client, ticket_id, action, headers).json()["ticket"]["status"]
            for action in ("call", "confirm", "start-service", "finish")
        ]

        assert statuses == ["CALLED", "CONFIRMED", "SERVING", "FINISHED"]

    def test_finish_twice(self, api_client: APIClient, db_tenant, ticket_id):
        headers = staff_headers(db_tenant)
        act(api_client, ticket_id, "call", headers)
        act(api_client, ticket_id, "finish", headers)

        response = act(api_client, ticket_id, "finish", headers)

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_skip_and_recall(self, api_client: APIClient, db_tenant, ticket_id):
        headers = staff_headers(db_tenant)
        act(api_client, ticket_id, "call", headers)
        recalled = act(api_client, ticket_id, "recall", headers).json()["ticket"]
        skipped = act(api_client, ticket_id, "skip", headers).json()["ticket"]

        assert recalled["recall_count"] == 1
        assert skipped["status"] == "WAITING"
        assert skipped["called_at"] is None

    def test_no_show(self, api_client: APIClient, db_tenant, ticket_id):
        headers = staff_headers(db_tenant)
        act(api_client, ticket_id, "call", headers)

        response = act(api_client, ticket_id, "no-show", headers)

        assert response.json()["ticket"]["status"] == "NO_SHOW"

    def test_staff_cancel_with_reason(self, api_client: APIClient, db_tenant, ticket_id):
        response = act(
            api_client, ticket_id, "cancel", staff_headers(db_tenant), reason="Left the venue"
        )

        assert response.status_code == 200
        assert response.json()["ticket"]["notes"] == "Left the venue"

    def test_customer_cannot_call(self, api_client: APIClient, db_customer, ticket_id):
        response = act(api_client, ticket_id, "call", customer_headers(db_customer))

        assert response.status_code == 403

    def test_customer_cancels_own_ticket(self, api_client: APIClient, db_queue, db_customer):
        headers = customer_headers(db_customer)
        ticket_id = admit(api_client, db_queue, headers).json()["ticket"]["id"]

        response = act(api_client, ticket_id, "cancel", headers)

        assert response.status_code == 200
        assert response.json()["ticket"]["status"] == "CANCELLED"

    def test_customer_cannot_cancel_walk_in(self, api_client: APIClient, db_customer, ticket_id):
        response = act(api_client, ticket_id, "cancel", customer_headers(db_customer))

        assert response.status_code == 404

    def test_unknown_action(self, api_client: APIClient, db_tenant, ticket_id):
        response = act(api_client, ticket_id, "teleport", staff_headers(db_tenant))

        assert response.status_code == 404
        assert response.json()["code"] == "UNKNOWN_ACTION"


@pytest.mark.django_db
class TestTicketQueries:
    """Tests for ticket detail, position, events and queue listings."""

    def test_detail_and_position(self, api_client: APIClient, db_tenant, db_queue):
        headers = staff_headers(db_tenant)
        admit(api_client, db_queue, headers, customer_name="First")
        second = admit(api_client, db_queue, headers, customer_name="Second").json()["ticket"]

        detail = api_client.get(f"/api/tickets/{second['id']}", **headers)
        position = api_client.get(f"/api/tickets/{second['id']}/position", **headers)

        assert detail.json()["ticket"]["number"] == "A-002"
        assert position.json() == {"position": 2, "eta_minutes": 30}

    def test_ticket_of_another_tenant_is_not_found(self, api_client: APIClient, db_tenant, db_queue):
        ticket = admit(api_client, db_queue, staff_headers(db_tenant), customer_name="Bruno")
        other = orm.Tenant.objects.create(name="Other", slug="other")

        response = api_client.get(
            f"/api/tickets/{ticket.json()['ticket']['id']}", **staff_headers(other)
        )

        assert response.status_code == 404
        assert response.json()["code"] == "TICKET_NOT_FOUND"

    def test_events(self, api_client: APIClient, db_tenant, db_queue):
        headers = staff_headers(db_tenant)
        ticket_id = admit(api_client, db_queue, headers, customer_name="Bruno").json()["ticket"]["id"]
        act(api_client, ticket_id, "call", headers)

        response = api_client.get(f"/api/tickets/{ticket_id}/events", **headers)

        assert [e["kind"] for e in response.json()["events"]] == ["CREATED", "CALLED"]

    def test_active_listing(self, api_client: APIClient, db_tenant, db_queue):
        headers = staff_headers(db_tenant)
        admit(api_client, db_queue, headers, customer_name="Normal")
        admit(api_client, db_queue, headers, customer_name="Vip", priority="VIP")

        response = api_client.get(f"/api/queues/{db_queue.id}/tickets/active?limit=1", **headers)

        body = response.json()
        assert [e["ticket"]["customer_name"] for e in body["tickets"]] == ["Vip"]
        assert body["tickets"][0]["position"] == 1
        assert body["pagination"] == {
            "total_items": 2,
            "current_page": 1,
            "limit": 1,
            "total_pages": 2,
        }

    def test_history_filters_by_status(self, api_client: APIClient, db_tenant, db_queue):
        headers = staff_headers(db_tenant)
        done = admit(api_client, db_queue, headers, customer_name="Done").json()["ticket"]["id"]
        gone = admit(api_client, db_queue, headers, customer_name="Gone").json()["ticket"]["id"]
        act(api_client, done, "call", headers)
        act(api_client, done, "finish", headers)
        act(api_client, gone, "cancel", headers)

        response = api_client.get(
            f"/api/queues/{db_queue.id}/tickets/history?status=FINISHED", **headers
        )

        assert [t["customer_name"] for t in response.json()["tickets"]] == ["Done"]

    def test_history_rejects_unknown_status(self, api_client: APIClient, db_tenant, db_queue):
        response = api_client.get(
            f"/api/queues/{db_queue.id}/tickets/history?status=LOST", **staff_headers(db_tenant)
        )

        assert response.status_code == 400

    def test_listings_are_staff_only(self, api_client: APIClient, db_queue, db_customer):
        response = api_client.get(
            f"/api/queues/{db_queue.id}/tickets/active", **customer_headers(db_customer)
        )

        assert response.status_code == 403


class TestErrorResponses:
    def test_forbidden_action_maps_to_403(self):
        response = error_response(ActionNotAllowedError("finish", "CUSTOMER"))

        assert response.status_code == 403
        assert response.data == {
            "code": "ACTION_NOT_ALLOWED",
            "message": "A customer cannot finish a ticket",
        }
