"""
Module: core.py
Description: Core SDK object wiring settings, transport and delivery queue.

Every event method validates its payload against the endpoint's model,
wraps it in a QueueItem and hands it to the delivery queue. The method
returns as soon as the item is accepted; delivery failures surface only
through flush(). User identify/alias and database reads bypass the queue
and return the transport result directly.

Key Components:
- Core: event methods, identify/alias, db_get, flush, aclose

Dependencies: httpx (via delivery.transport), pydantic, structlog
Author: Mindlytics SDK Team
"""

from typing import Any, Dict, List, Optional, Type

from mindlytics.config.settings import Settings
from mindlytics.delivery.queue import EventQueue
from mindlytics.delivery.retry import SleepFn
from mindlytics.delivery.transport import HttpTransport, Transport, TransportResult
from mindlytics.models.events import (
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
from mindlytics.models.queue import QueueError, QueueItem
from mindlytics.utils.logger import get_logger

DB_PATH = "/bc/v1/db/{collection}/{op}"
DB_COLLECTIONS = frozenset({
    "users", "events", "sessions", "conversations",
    "messages", "orgkeys", "organizations", "apps",
})
DB_OPERATIONS = frozenset({"find", "findOne"})


class Core:
    """
    Low-level SDK client for the collection service.

    Example:
        >>> async with Core(Settings(api_key="key", project_id="proj")) as core:
        ...     await core.track_event(session_id="s-1", event="Button Clicked")
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[Transport] = None,
        sleep: Optional[SleepFn] = None
    ):
        """
        Initialize the core client.

        Args:
            settings: SDK settings
            transport: Transport override, defaults to HttpTransport
            sleep: Async sleep override for retry waits
        """
        self.settings = settings
        self._logger = get_logger(__name__, debug=settings.debug, component="Core")
        self.transport = transport or HttpTransport(
            base_url=settings.base_url,
            headers=self.headers,
            timeout_seconds=settings.request_timeout,
            debug=settings.debug
        )

        queue_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.queue = EventQueue(self.transport, settings.queue, **queue_kwargs)

        self._logger.debug(
            "Core initialized",
            base_url=settings.base_url,
            project_id=settings.project_id
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.settings.api_key,
            "x-app-id": self.settings.project_id,
        }

    async def __aenter__(self) -> "Core":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.flush()
        await self.aclose()

    async def _make_request(self, model: Type[EventBody], params: Dict[str, Any]) -> None:
        event = model(**params)
        await self.queue.submit(QueueItem(
            path=EVENT_PATHS[model],
            body=event.to_body(),
            params={"headers": self.headers}
        ))

    async def flush(self) -> List[QueueError]:
        """
        Wait for every queued event to be delivered or dropped.

        Useful before serverless function shutdown.

        Returns:
            Events that failed permanently since the last flush
        """
        return await self.queue.flush()

    async def aclose(self) -> None:
        """Stop the delivery queue and close the HTTP client."""
        await self.queue.close()
        aclose = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()

    async def start_session(self, **params: Any) -> None:
        await self._make_request(StartSessionEvent, params)

    async def end_session(self, **params: Any) -> None:
        await self._make_request(EndSessionEvent, params)

    async def track_event(self, **params: Any) -> None:
        await self._make_request(TrackEvent, params)

    async def session_user_identify(self, **params: Any) -> None:
        await self._make_request(SessionIdentifyEvent, params)

    async def session_user_alias(self, **params: Any) -> None:
        await self._make_request(SessionAliasEvent, params)

    async def start_conversation(self, **params: Any) -> None:
        await self._make_request(StartConversationEvent, params)

    async def end_conversation(self, **params: Any) -> None:
        await self._make_request(EndConversationEvent, params)

    async def track_conversation_turn(self, **params: Any) -> None:
        await self._make_request(ConversationTurnEvent, params)

    async def track_conversation_usage(self, **params: Any) -> None:
        await self._make_request(ConversationUsageEvent, params)

    async def track_conversation_function(self, **params: Any) -> None:
        await self._make_request(ConversationFunctionEvent, params)

    async def identify(self, **params: Any) -> TransportResult:
        """Identify a user outside any session. Not queued."""
        body = UserIdentifyRequest(**params).model_dump(mode="json", exclude_none=True)
        return await self.transport.post(USER_IDENTIFY_PATH, body, {"headers": self.headers})

    async def alias(self, **params: Any) -> TransportResult:
        """Alias a user outside any session. Not queued."""
        body = UserAliasRequest(**params).model_dump(mode="json", exclude_none=True)
        return await self.transport.post(USER_ALIAS_PATH, body, {"headers": self.headers})

    async def db_get(
        self,
        collection: str,
        op: str,
        query: Optional[Dict[str, Any]] = None
    ) -> TransportResult:
        """
        Read from the service's database API.

        Args:
            collection: One of DB_COLLECTIONS
            op: 'find' or 'findOne'
            query: Query string parameters, already encoded

        Returns:
            Normalized TransportResult

        Raises:
            ValueError: If collection or op is missing or unknown
        """
        if not collection or not op:
            raise ValueError("Collection and operation must be specified")
        if collection not in DB_COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        if op not in DB_OPERATIONS:
            raise ValueError(f"Unknown operation: {op}")

        return await self.transport.get(DB_PATH, {
            "headers": self.headers,
            "path": {"collection": collection, "op": op},
            "query": query or None,
        })
