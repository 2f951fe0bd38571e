from eventhub.client.api import ApiError, EventHubClient
from eventhub.client.mirror import EventMirror, Pagination
from eventhub.client.retry import RetryConfig

__all__ = ["ApiError", "EventHubClient", "EventMirror", "Pagination", "RetryConfig"]
