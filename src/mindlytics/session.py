"""
Module: session.py
Description: Session handle carrying identity into every event.

A Session is created by Client.create_session() and passed explicitly to
whatever code needs to record events for it. Its identifiers are used
as defaults; keyword arguments given to a method take precedence,
except session_id, which is always the session's own.
"""

from typing import Any, List, Optional

from mindlytics.core import Core
from mindlytics.models.queue import QueueError


class Session:
    """Identity for one user session plus its tracking methods."""

    def __init__(
        self,
        core: Core,
        session_id: str,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        device_id: Optional[str] = None
    ):
        """
        Initialize a session.

        Args:
            core: Core client used to send events
            session_id: Globally unique session ID
            conversation_id: Conversation applied to all conversation events
            user_id: User ID, if known
            device_id: Device ID, if known

        Raises:
            ValueError: If session_id is empty or neither user_id nor device_id is given
        """
        if not session_id:
            raise ValueError("session_id must be a non-empty string")
        if not (user_id or device_id):
            raise ValueError("User ID or device ID is required")

        self._core = core
        self._session_id = session_id
        self._conversation_id = conversation_id or None
        self._user_id = user_id or None
        self._device_id = device_id or None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def device_id(self) -> Optional[str]:
        return self._device_id

    def _identity(self, **params: Any) -> dict:
        return {
            "user_id": self._user_id,
            "device_id": self._device_id,
            **params,
            "session_id": self._session_id,
        }

    def _conversation(self, action: str, params: dict) -> dict:
        conversation_id = params.pop("conversation_id", None) or self._conversation_id
        if not conversation_id:
            raise ValueError(f"Conversation id is required to {action}")
        return {**self._identity(**params), "conversation_id": conversation_id}

    async def start(self, **params: Any) -> None:
        await self._core.start_session(**{
            "id": self._user_id,
            "device_id": self._device_id,
            **params,
            "session_id": self._session_id,
        })

    async def end(self, **params: Any) -> None:
        await self._core.end_session(**self._identity(**params))

    async def track(self, **params: Any) -> None:
        await self._core.track_event(
            **self._identity(**{"conversation_id": self._conversation_id, **params})
        )

    async def identify(self, **params: Any) -> None:
        await self._core.session_user_identify(**self._identity(**params))

    async def alias(self, **params: Any) -> None:
        await self._core.session_user_alias(**self._identity(**params))

    async def start_conversation(self, **params: Any) -> None:
        await self._core.start_conversation(**self._conversation("start a conversation", params))

    async def end_conversation(self, **params: Any) -> None:
        await self._core.end_conversation(**self._conversation("end a conversation", params))

    async def track_conversation_turn(self, **params: Any) -> None:
        await self._core.track_conversation_turn(
            **self._conversation("track a conversation turn", params)
        )

    async def track_conversation_usage(self, **params: Any) -> None:
        await self._core.track_conversation_usage(
            **self._conversation("track conversation turn usage", params)
        )

    async def track_conversation_function(self, **params: Any) -> None:
        await self._core.track_conversation_function(
            **self._conversation("track a conversation function", params)
        )

    async def flush(self) -> List[QueueError]:
        """Wait for queued events and return the ones that failed."""
        return await self._core.flush()
