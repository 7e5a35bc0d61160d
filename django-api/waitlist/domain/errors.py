"""Domain error codes for the waitlist module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    QUEUE_NOT_FOUND = "QUEUE_NOT_FOUND"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    QUEUE_NOT_ACCEPTING = "QUEUE_NOT_ACCEPTING"
    QUEUE_FULL = "QUEUE_FULL"
    ACTIVE_TICKET_EXISTS = "ACTIVE_TICKET_EXISTS"
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    CUSTOMER_BLOCKED = "CUSTOMER_BLOCKED"
    TICKET_NUMBER_EXHAUSTED = "TICKET_NUMBER_EXHAUSTED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Entity absent, or owned by another tenant."""


class InvalidStateError(DomainError):
    """Requested action is illegal from the current state."""


class ConflictError(DomainError):
    """Request collides with existing records."""


class ForbiddenError(DomainError):
    """Caller may not perform the action."""


class ValidationError(DomainError):
    """Malformed input."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_FAILED, message=message)


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket is missing or outside the caller's tenant."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Ticket not found",
        )
        self.ticket_id = ticket_id


class QueueNotFoundError(NotFoundError):
    """Raised when a queue is missing or outside the caller's tenant."""

    def __init__(self, queue_id: str) -> None:
        super().__init__(
            code=ErrorCode.QUEUE_NOT_FOUND,
            message="Queue not found",
        )
        self.queue_id = queue_id


class CustomerNotFoundError(NotFoundError):
    """Raised when the admitting customer is unknown to the tenant."""

    def __init__(self, customer_id: str) -> None:
        super().__init__(
            code=ErrorCode.CUSTOMER_NOT_FOUND,
            message="Customer not found",
        )
        self.customer_id = customer_id


class InvalidTransitionError(InvalidStateError):
    """Raised when a lifecycle action does not apply to the ticket status."""

    def __init__(self, action: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot {action} a ticket in status {status}",
        )
        self.action = action
        self.status = status


class ActionNotAllowedError(ForbiddenError):
    """Raised when the actor kind may not perform a lifecycle action."""

    def __init__(self, action: str, actor_kind: str) -> None:
        super().__init__(
            code=ErrorCode.ACTION_NOT_ALLOWED,
            message=f"A {actor_kind.lower()} cannot {action} a ticket",
        )
        self.action = action
        self.actor_kind = actor_kind


class AdmissionError(DomainError):
    """Base for every reason a ticket is refused entry into a queue."""


class QueueNotAcceptingError(AdmissionError, InvalidStateError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.QUEUE_NOT_ACCEPTING,
            message="This queue is not accepting new tickets at the moment",
        )


class QueueFullError(AdmissionError, ConflictError):
    def __init__(self, max_concurrent: int) -> None:
        super().__init__(
            code=ErrorCode.QUEUE_FULL,
            message=f"Queue is full. Maximum capacity: {max_concurrent}",
        )
        self.max_concurrent = max_concurrent


class ActiveTicketExistsError(AdmissionError, ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ACTIVE_TICKET_EXISTS,
            message="Customer already has an active ticket",
        )


class DailyEntryLimitError(AdmissionError, ConflictError):
    def __init__(self, limit: int) -> None:
        super().__init__(
            code=ErrorCode.DAILY_LIMIT_REACHED,
            message=f"Daily entry limit of {limit} reached for this customer",
        )
        self.limit = limit


class CustomerBlockedError(AdmissionError, ConflictError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CUSTOMER_BLOCKED,
            message="Customer is blocked from joining queues",
        )


class TicketNumberExhaustedError(ConflictError):
    """Raised when no unique ticket number could be issued."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NUMBER_EXHAUSTED,
            message="Could not issue a ticket number, please try again",
        )
        self.attempts = attempts
