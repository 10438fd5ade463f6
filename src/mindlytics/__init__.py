"""
Mindlytics SDK
==============

Client library for the Mindlytics behavioral-analytics collection service.

Tracking calls return as soon as the event is accepted. Events are then
delivered one at a time, in order, by a retrying delivery queue; await
flush() to wait for delivery and get back the events that failed.

Quick Start::

    from mindlytics import Client

    async with Client(api_key="your-api-key", project_id="your-project-id") as client:
        session = client.create_session(session_id="session-123", user_id="user-123")
        await session.start()
        await session.track(event="Button Clicked", properties={"button": "submit"})
        await session.end()

        for error in await session.flush():
            print(error.code, error.error)
"""

from mindlytics.client import Client
from mindlytics.config.settings import QueueSettings, Settings
from mindlytics.core import Core
from mindlytics.delivery.queue import EventQueue
from mindlytics.delivery.transport import HttpTransport, TransportResult
from mindlytics.models.queue import QueueError, QueueItem
from mindlytics.session import Session

__version__ = "0.1.0"
__all__ = [
    "Client",
    "Core",
    "EventQueue",
    "HttpTransport",
    "QueueError",
    "QueueItem",
    "QueueSettings",
    "Session",
    "Settings",
    "TransportResult",
]
