"""
Module: events.py
Description: Request body models for the collection service endpoints.

Each event endpoint has its own model with its discriminating fields
fixed, so payloads are validated before they reach the delivery queue.
Fields the service accepts beyond the ones declared here are allowed
and forwarded unchanged.

Key Components:
- Session events: StartSessionEvent, EndSessionEvent
- Session user events: TrackEvent, SessionIdentifyEvent, SessionAliasEvent
- Conversation events: StartConversationEvent, EndConversationEvent,
  ConversationTurnEvent, ConversationUsageEvent, ConversationFunctionEvent
- Direct user requests: UserIdentifyRequest, UserAliasRequest
- EVENT_PATHS: route for each event model

Dependencies: pydantic, typing
Author: Mindlytics SDK Team
"""

from typing import Any, Dict, Literal, Optional, Type
from pydantic import BaseModel, ConfigDict, Field


class EventBody(BaseModel):
    """Fields shared by every queued event."""

    model_config = ConfigDict(
        extra="allow",
        str_strip_whitespace=True
    )

    session_id: str = Field(..., min_length=1, description="Session identifier")
    timestamp: Optional[str] = Field(
        default=None,
        description="ISO 8601 event time; the service uses receipt time if omitted"
    )

    def to_body(self) -> Dict[str, Any]:
        """Serialize for the wire, dropping unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class StartSessionEvent(EventBody):
    type: Literal["start_session"] = "start_session"
    id: Optional[str] = Field(default=None, description="User ID")
    device_id: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None


class EndSessionEvent(EventBody):
    type: Literal["end_session"] = "end_session"
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None


class TrackEvent(EventBody):
    type: Literal["track"] = "track"
    event: str = Field(..., min_length=1, description="Event name")
    conversation_id: Optional[str] = None
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None


class SessionIdentifyEvent(EventBody):
    type: Literal["identify"] = "identify"
    id: Optional[str] = Field(default=None, description="User ID to attach")
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    traits: Optional[Dict[str, Any]] = None


class SessionAliasEvent(EventBody):
    type: Literal["alias"] = "alias"
    id: Optional[str] = Field(default=None, description="New user ID")
    previous_id: str = Field(..., min_length=1, description="Previous user ID")
    user_id: Optional[str] = None
    device_id: Optional[str] = None


class ConversationEvent(EventBody):
    """Base for conversation events, sent as 'track' events with a fixed name."""

    type: Literal["track"] = "track"
    conversation_id: str = Field(..., min_length=1, description="Conversation identifier")
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None
    attributes: Optional[Dict[str, Any]] = None


class StartConversationEvent(ConversationEvent):
    event: Literal["Conversation Started"] = "Conversation Started"


class EndConversationEvent(ConversationEvent):
    event: Literal["Conversation Ended"] = "Conversation Ended"


class ConversationTurnEvent(ConversationEvent):
    event: Literal["Conversation Turn"] = "Conversation Turn"


class ConversationUsageEvent(ConversationEvent):
    event: Literal["Conversation Usage"] = "Conversation Usage"


class ConversationFunctionEvent(ConversationEvent):
    event: Literal["Conversation Function"] = "Conversation Function"


class UserIdentifyRequest(BaseModel):
    """Body for the direct (unqueued) user identify endpoint."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    device_id: Optional[str] = None
    traits: Optional[Dict[str, Any]] = None


class UserAliasRequest(BaseModel):
    """Body for the direct (unqueued) user alias endpoint."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    previous_id: str = Field(..., min_length=1)


EVENT_PATHS: Dict[Type[EventBody], str] = {
    StartSessionEvent: "/bc/v1/events/event/start-session",
    EndSessionEvent: "/bc/v1/events/event/end-session",
    TrackEvent: "/bc/v1/events/event/track",
    SessionIdentifyEvent: "/bc/v1/events/event/identify",
    SessionAliasEvent: "/bc/v1/events/event/alias",
    StartConversationEvent: "/bc/v1/events/event/start-conversation",
    EndConversationEvent: "/bc/v1/events/event/end-conversation",
    ConversationTurnEvent: "/bc/v1/events/event/conversation-turn",
    ConversationUsageEvent: "/bc/v1/events/event/conversation-usage",
    ConversationFunctionEvent: "/bc/v1/events/event/conversation-function",
}

USER_IDENTIFY_PATH = "/bc/v1/user/identify"
USER_ALIAS_PATH = "/bc/v1/user/alias"
