"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the data models used by the SDK:
- QueueItem, QueueError: Delivery queue work items and failure records
- Event body models: One model per collection service event endpoint

All models are exported here for convenient importing.
"""

from .queue import QueueItem, QueueError
from .events import (
    EVENT_PATHS,
    USER_ALIAS_PATH,
    USER_IDENTIFY_PATH,
    ConversationFunctionEvent,
    ConversationTurnEvent,
    ConversationUsageEvent,
    EndConversationEvent,
    EndSessionEvent,
    EventBody,
    SessionAliasEvent,
    SessionIdentifyEvent,
    StartConversationEvent,
    StartSessionEvent,
    TrackEvent,
    UserAliasRequest,
    UserIdentifyRequest,
)

__all__ = [
    "QueueItem",
    "QueueError",
    "EVENT_PATHS",
    "USER_ALIAS_PATH",
    "USER_IDENTIFY_PATH",
    "ConversationFunctionEvent",
    "ConversationTurnEvent",
    "ConversationUsageEvent",
    "EndConversationEvent",
    "EndSessionEvent",
    "EventBody",
    "SessionAliasEvent",
    "SessionIdentifyEvent",
    "StartConversationEvent",
    "StartSessionEvent",
    "TrackEvent",
    "UserAliasRequest",
    "UserIdentifyRequest",
]
