"""
Module: conftest.py
Description: Shared pytest fixtures for Mindlytics SDK tests.

Provides settings that ignore the environment, a scripted in-memory
transport, and a sleep replacement that records requested delays so
backoff can be asserted without waiting.
"""

import pytest

from mindlytics.config.settings import QueueSettings, Settings
from mindlytics.models.queue import QueueItem
from tests.fakes import FakeTransport, RecordingSleep

BASE_URL = "http://localhost:3000"


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading for predictable tests.
    """
    return Settings(
        _env_file=None,
        api_key="test-api-key",
        project_id="test-project-id",
        base_url=BASE_URL,
        debug=False
    )


@pytest.fixture
def queue_settings():
    return QueueSettings(base_delay_ms=1000, max_retries=3)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def sample_item():
    """Typical queued track event."""
    return QueueItem(
        path="/bc/v1/events/event/track",
        body={
            "type": "track",
            "event": "Button Clicked",
            "session_id": "session-123",
            "properties": {"buttonId": "submit"}
        },
        params={"headers": {"Authorization": "test-api-key"}}
    )
