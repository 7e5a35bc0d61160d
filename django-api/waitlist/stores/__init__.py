from waitlist.stores.django_store import DjangoQueueStore
from waitlist.stores.interfaces import DuplicateTicketNumber, QueueStore

__all__ = ["DjangoQueueStore", "DuplicateTicketNumber", "QueueStore"]
