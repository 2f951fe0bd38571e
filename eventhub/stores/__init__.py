from eventhub.stores.interfaces import EventFilter, EventStore
from eventhub.stores.tortoise_store import TortoiseEventStore

__all__ = ["EventFilter", "EventStore", "TortoiseEventStore"]
