"""
Module: queue.py
Description: Data models for the delivery queue.

Key Components:
- QueueItem: One unit of delivery work (route, payload, transport params)
- QueueError: Terminal failure record returned by EventQueue.flush()

The queue treats path, body and params as opaque; only the transport
interprets them.

Dependencies: pydantic, datetime, typing
Author: Mindlytics SDK Team
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueItem(BaseModel):
    """
    A single request waiting for delivery.

    Attributes:
        path: Route on the remote service (e.g. '/bc/v1/events/event/track')
        body: Request payload
        params: Transport parameters ('headers', 'query', 'path' keys)
        idempotency_key: Caller-supplied deduplication hint (carried only)
        timestamp: Creation time
        retries: Retries performed so far, maintained by the queue
    """

    model_config = ConfigDict(validate_assignment=True)

    path: str = Field(..., min_length=1, description="Destination route")
    body: Any = Field(..., description="Request payload")
    params: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Transport-specific parameters"
    )
    idempotency_key: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Reserved deduplication hint"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Item creation timestamp"
    )
    retries: int = Field(default=0, ge=0, description="Retries performed")


class QueueError(BaseModel):
    """
    A permanently failed queue item.

    Attributes:
        item: The item that failed
        error: Human-readable failure description
        code: HTTP status code, or 500 when the transport raised
    """

    item: QueueItem
    error: str
    code: int
