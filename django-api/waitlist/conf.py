"""Engine tunables, overridable through the QUEUE_ENGINE setting."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "DEFAULT_SERVICE_MINUTES": 15,
    "SERVICE_TIME_SAMPLE_SIZE": 10,
    "TICKET_PREFIX": "A",
    "ALLOCATION_MAX_ATTEMPTS": 5,
    "ALLOCATION_BACKOFF_SECONDS": 0.1,
    "ENFORCE_DAILY_ENTRY_LIMIT": True,
}


def engine_setting(name: str) -> Any:
    overrides = getattr(settings, "QUEUE_ENGINE", {})
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
