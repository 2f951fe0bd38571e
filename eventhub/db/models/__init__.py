from eventhub.db.models.user import User
from eventhub.db.models.event import Event

__all__ = ["User", "Event"]
