"""Rolling average service time per queue."""

import math

from waitlist.conf import engine_setting
from waitlist.domain import QueueId
from waitlist.stores.interfaces import QueueStore


class ServiceTimeEstimator:
    """Average minutes per service over the most recent finished tickets.

    Computed from history on every call; nothing is cached between calls.
    """

    def __init__(
        self,
        store: QueueStore,
        sample_size: int | None = None,
        default_minutes: int | None = None,
    ) -> None:
        self._store = store
        self._sample_size = sample_size or engine_setting("SERVICE_TIME_SAMPLE_SIZE")
        self._default_minutes = default_minutes or engine_setting("DEFAULT_SERVICE_MINUTES")

    def estimate(self, queue_id: QueueId) -> int:
        durations = self._store.recent_service_durations(queue_id, self._sample_size)
        if not durations:
            return self._default_minutes
        mean = math.ceil(sum(durations) / len(durations))
        return mean if mean > 0 else self._default_minutes
