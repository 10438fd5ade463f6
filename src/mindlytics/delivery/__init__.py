"""
Package: delivery
Description: Event delivery to the Mindlytics collection service.

Provides the HTTP transport, the retry policy and the ordered
delivery queue that sits between the SDK's tracking methods and
the network.
"""

from .transport import HttpTransport, Transport, TransportResult
from .retry import RETRYABLE_STATUS_CODES, is_retryable, retry_after_seconds
from .queue import EventQueue

__all__ = [
    "EventQueue",
    "HttpTransport",
    "RETRYABLE_STATUS_CODES",
    "Transport",
    "TransportResult",
    "is_retryable",
    "retry_after_seconds",
]
