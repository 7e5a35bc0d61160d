"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details

The upstream auth layer authenticates the caller and forwards its identity in
the X-Tenant-Id, X-Actor-Kind, X-Actor-Id and (for app customers)
X-Customer-Id headers.
"""

import logging
from collections.abc import Callable

from rest_framework import status
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from waitlist.domain import Actor, ActorKind, CustomerId, Page, Ticket, TenantId
from waitlist.domain.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from waitlist.handlers.serializers import (
    AdmitTicketSerializer,
    CancelTicketSerializer,
    FinishTicketSerializer,
    HistoryQuerySerializer,
    ListingQuerySerializer,
    PositionSerializer,
    QueueEntrySerializer,
    TicketEventSerializer,
    TicketSerializer,
)
from waitlist.services import TicketService, ticket_service

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
]


def error_response(error: DomainError) -> Response:
    http_status = next(
        (code for kind, code in _STATUS_BY_ERROR if isinstance(error, kind)),
        status.HTTP_400_BAD_REQUEST,
    )
    return Response({"code": error.code.value, "message": error.message}, status=http_status)


def resolve_actor(request: Request) -> Actor:
    headers = request.headers
    try:
        tenant_id = TenantId.from_string(headers["X-Tenant-Id"])
        kind = ActorKind(headers["X-Actor-Kind"])
        actor_id = headers["X-Actor-Id"]
        customer_header = headers.get("X-Customer-Id")
        customer_id = CustomerId.from_string(customer_header) if customer_header else None
    except (KeyError, ValueError) as exc:
        raise NotAuthenticated() from exc
    if kind is ActorKind.CUSTOMER and customer_id is None:
        raise NotAuthenticated()
    return Actor(tenant_id=tenant_id, kind=kind, actor_id=actor_id, customer_id=customer_id)


def require_staff(actor: Actor) -> None:
    if actor.kind is ActorKind.CUSTOMER:
        raise PermissionDenied()


def _page_payload(page: Page, items: list) -> dict:
    return {
        "tickets": items,
        "pagination": {
            "total_items": page.total,
            "current_page": page.page,
            "limit": page.limit,
            "total_pages": page.total_pages,
        },
    }


class QueueTicketsView(APIView):
    """Handler for POST /api/queues/{queue_id}/tickets"""

    def post(self, request: Request, queue_id: str) -> Response:
        actor = resolve_actor(request)
        serializer = AdmitTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = ticket_service()
        try:
            ticket = service.admit(queue_id, actor, **serializer.validated_data)
            position = service.position_and_eta(ticket.id.value)
        except DomainError as error:
            return error_response(error)
        body = {
            "ticket": TicketSerializer(ticket).data,
            **PositionSerializer(position).data,
        }
        return Response(body, status=status.HTTP_201_CREATED)


class ActiveQueueView(APIView):
    """Handler for GET /api/queues/{queue_id}/tickets/active"""

    def get(self, request: Request, queue_id: str) -> Response:
        actor = resolve_actor(request)
        require_staff(actor)
        query = ListingQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        try:
            page = ticket_service().list_active(queue_id, actor, **query.validated_data)
        except DomainError as error:
            return error_response(error)
        items = QueueEntrySerializer(page.items, many=True).data
        return Response(_page_payload(page, items))


class QueueHistoryView(APIView):
    """Handler for GET /api/queues/{queue_id}/tickets/history"""

    def get(self, request: Request, queue_id: str) -> Response:
        actor = resolve_actor(request)
        require_staff(actor)
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        try:
            page = ticket_service().list_history(
                queue_id,
                actor,
                statuses=params.get("status"),
                search=params.get("search"),
                page=params["page"],
                limit=params["limit"],
            )
        except DomainError as error:
            return error_response(error)
        items = TicketSerializer(page.items, many=True).data
        return Response(_page_payload(page, items))


class TicketDetailView(APIView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        actor = resolve_actor(request)
        service = ticket_service()
        try:
            ticket = service.get_ticket(ticket_id, actor)
            position = service.position_and_eta(ticket_id, actor)
        except DomainError as error:
            return error_response(error)
        return Response({"ticket": TicketSerializer(ticket).data, **PositionSerializer(position).data})


class TicketPositionView(APIView):
    """Handler for GET /api/tickets/{ticket_id}/position"""

    def get(self, request: Request, ticket_id: str) -> Response:
        actor = resolve_actor(request)
        try:
            position = ticket_service().position_and_eta(ticket_id, actor)
        except DomainError as error:
            return error_response(error)
        return Response(PositionSerializer(position).data)


class TicketEventsView(APIView):
    """Handler for GET /api/tickets/{ticket_id}/events"""

    def get(self, request: Request, ticket_id: str) -> Response:
        actor = resolve_actor(request)
        require_staff(actor)
        try:
            events = ticket_service().list_events(ticket_id, actor)
        except DomainError as error:
            return error_response(error)
        return Response({"events": TicketEventSerializer(events, many=True).data})


def _finish(service: TicketService, ticket_id: str, actor: Actor, request: Request) -> Ticket:
    body = FinishTicketSerializer(data=request.data)
    body.is_valid(raise_exception=True)
    return service.finish(ticket_id, actor, notes=body.validated_data.get("notes") or None)


def _cancel(service: TicketService, ticket_id: str, actor: Actor, request: Request) -> Ticket:
    body = CancelTicketSerializer(data=request.data)
    body.is_valid(raise_exception=True)
    return service.cancel(ticket_id, actor, reason=body.validated_data.get("reason") or None)


_STAFF_ACTIONS: dict[str, Callable[[TicketService, str, Actor, Request], Ticket]] = {
    "call": lambda service, ticket_id, actor, request: service.call(ticket_id, actor),
    "confirm": lambda service, ticket_id, actor, request: service.confirm_presence(ticket_id, actor),
    "start-service": lambda service, ticket_id, actor, request: service.start_service(
        ticket_id, actor
    ),
    "skip": lambda service, ticket_id, actor, request: service.skip(ticket_id, actor),
    "recall": lambda service, ticket_id, actor, request: service.recall(ticket_id, actor),
    "no-show": lambda service, ticket_id, actor, request: service.mark_no_show(ticket_id, actor),
    "finish": _finish,
}


class TicketActionView(APIView):
    """Handler for POST /api/tickets/{ticket_id}/{action}"""

    def post(self, request: Request, ticket_id: str, action: str) -> Response:
        actor = resolve_actor(request)
        if action == "cancel":
            handler = _cancel
        elif action in _STAFF_ACTIONS:
            require_staff(actor)
            handler = _STAFF_ACTIONS[action]
        else:
            return Response(
                {"code": "UNKNOWN_ACTION", "message": "Unknown ticket action"},
                status=status.HTTP_404_NOT_FOUND,
            )
        try:
            ticket = handler(ticket_service(), ticket_id, actor, request)
        except DomainError as error:
            return error_response(error)
        return Response({"ticket": TicketSerializer(ticket).data})
