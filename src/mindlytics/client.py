"""
Module: client.py
Description: Caller-facing entry point of the Mindlytics SDK.

Client builds the Core from settings, creates Session handles, and
exposes the unqueued user and database operations.

Key Components:
- Client.create_session(): Session bound to this client's delivery queue
- Client.identify_user() / alias_user(): direct user updates
- Client.db_get(): database read with JSON-encoded query parameters

Dependencies: pydantic-settings (via config), json
Author: Mindlytics SDK Team
"""

import json
from typing import Any, Dict, List, Optional, Union

from mindlytics.config.settings import Settings
from mindlytics.core import Core
from mindlytics.delivery.retry import SleepFn
from mindlytics.delivery.transport import Transport, TransportResult
from mindlytics.models.queue import QueueError
from mindlytics.session import Session

# Query fields sent to the database API as JSON strings
_JSON_QUERY_FIELDS = ("filter", "projection", "sort")


class Client:
    """
    Mindlytics SDK client.

    Example:
        >>> client = Client(api_key="your-api-key", project_id="your-project-id")
        >>> session = client.create_session(session_id=str(uuid4()), user_id="123")
        >>> await session.start()
        >>> await session.track(event="tool_call", properties={"tool_call_id": "123"})
        >>> await session.end()
        >>> errors = await session.flush()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
        sleep: Optional[SleepFn] = None,
        **overrides: Any
    ):
        """
        Initialize the client.

        Args:
            settings: Complete settings; built from overrides and environment if omitted
            transport: Transport override, mainly for tests
            sleep: Async sleep override for retry waits
            **overrides: Settings fields (api_key, project_id, base_url, debug, queue, ...)

        Raises:
            pydantic.ValidationError: If required settings are missing or invalid
        """
        if settings is None:
            settings = Settings(**overrides)
        elif overrides:
            # Assignment validates each override without re-reading env or .env
            settings = settings.model_copy(deep=True)
            for name, value in overrides.items():
                setattr(settings, name, value)

        self.settings = settings
        self.core = Core(settings, transport=transport, sleep=sleep)
        self.session: Optional[Session] = None

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.flush()
        await self.aclose()

    def create_session(
        self,
        session_id: str,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        device_id: Optional[str] = None
    ) -> Session:
        """
        Create a session handle and remember it as the client's current session.

        Args:
            session_id: Globally unique session ID
            conversation_id: Conversation applied to all conversation events
            user_id: User ID, if known
            device_id: Device ID, if known

        Returns:
            New Session

        Raises:
            ValueError: If neither user_id nor device_id is given
        """
        self.session = Session(
            self.core,
            session_id=session_id,
            conversation_id=conversation_id,
            user_id=user_id,
            device_id=device_id
        )
        return self.session

    async def identify_user(self, **params: Any) -> TransportResult:
        return await self.core.identify(**params)

    async def alias_user(self, **params: Any) -> TransportResult:
        return await self.core.alias(**params)

    async def db_get(
        self,
        collection: str,
        op: str,
        query: Optional[Dict[str, Any]] = None
    ) -> TransportResult:
        """
        Query the service's database API.

        Args:
            collection: Collection name (users, events, sessions, ...)
            op: 'find' or 'findOne'
            query: Optional filter, projection, sort, skip, limit and include

        Returns:
            Normalized TransportResult

        Raises:
            ValueError: If the query cannot be encoded or collection/op are invalid
        """
        try:
            encoded = _encode_query(query or {})
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid query parameters: {e}") from e
        return await self.core.db_get(collection, op, encoded)

    async def flush(self) -> List[QueueError]:
        return await self.core.flush()

    async def aclose(self) -> None:
        await self.core.aclose()


def _encode_query(query: Dict[str, Any]) -> Dict[str, Any]:
    encoded: Dict[str, Any] = {}
    for field in _JSON_QUERY_FIELDS:
        if query.get(field):
            encoded[field] = json.dumps(query[field])

    include: Union[None, str, dict, list] = query.get("include")
    if include:
        encoded["include"] = json.dumps(include if isinstance(include, list) else [include])

    for field in ("skip", "limit"):
        if query.get(field) is not None:
            encoded[field] = query[field]
    return encoded
