"""
Module: test_queue.py
Description: Unit tests for the ordered delivery queue.

Covers ordering, retry and backoff, Retry-After handling, error
classification, flush semantics and debug logging, using a scripted
transport and a recording sleep.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from mindlytics.config.settings import QueueSettings
from mindlytics.delivery.queue import EventQueue
from mindlytics.models.queue import QueueItem
from tests.fakes import make_result

PATH = "/bc/v1/events/event/track"


def item(path: str = PATH, **body) -> QueueItem:
    return QueueItem(path=path, body=body or {"event": "Test Event"})


class TestEventQueueDelivery:
    """Success, failure and retry outcomes for a single item."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, fake_transport, recording_sleep, sample_item):
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(sample_item)
        errors = await queue.flush()

        assert errors == []
        assert fake_transport.attempts(PATH) == 1
        assert fake_transport.calls[0].body == sample_item.body
        assert fake_transport.calls[0].params == sample_item.params
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhaustion_records_single_error(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(503), make_result(503), make_result(503))
        queue = EventQueue(fake_transport, QueueSettings(max_retries=3), sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert fake_transport.attempts(PATH) == 3
        assert len(errors) == 1
        assert errors[0].code == 503
        assert "Max retries reached" in errors[0].error
        assert "Service Unavailable" in errors[0].error
        assert errors[0].item.retries == 2

    @pytest.mark.asyncio
    async def test_non_retryable_short_circuits(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(500))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert fake_transport.attempts(PATH) == 1
        assert len(errors) == 1
        assert errors[0].code == 500
        assert "Non-retryable error" in errors[0].error
        assert "Internal Server Error" in errors[0].error
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_success_after_retry(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(429), make_result(200))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert errors == []
        assert fake_transport.attempts(PATH) == 2

    @pytest.mark.asyncio
    async def test_thrown_transport_error_not_retried(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, httpx.ConnectError("connection refused"))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert fake_transport.attempts(PATH) == 1
        assert len(errors) == 1
        assert errors[0].code == 500
        assert "connection refused" in errors[0].error
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retryable_status_codes(self, fake_transport, recording_sleep):
        for code in (408, 429, 502, 503, 504):
            path = f"/retry/{code}"
            fake_transport.script(path, make_result(code))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        for code in (408, 429, 502, 503, 504):
            await queue.enqueue(item(path=f"/retry/{code}"))

        assert await queue.flush() == []
        for code in (408, 429, 502, 503, 504):
            assert fake_transport.attempts(f"/retry/{code}") == 2

    @pytest.mark.asyncio
    async def test_other_client_errors_are_terminal(self, fake_transport, recording_sleep):
        for code in (400, 401, 404, 422, 501):
            fake_transport.script(f"/fail/{code}", make_result(code))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        for code in (400, 401, 404, 422, 501):
            await queue.enqueue(item(path=f"/fail/{code}"))
        errors = await queue.flush()

        assert [e.code for e in errors] == [400, 401, 404, 422, 501]
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_max_retries_one_never_retries(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(503))
        queue = EventQueue(fake_transport, QueueSettings(max_retries=1), sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert fake_transport.attempts(PATH) == 1
        assert errors[0].code == 503
        assert "Max retries reached" in errors[0].error


class TestEventQueueBackoff:
    """Backoff delays computed between attempts."""

    @pytest.mark.asyncio
    async def test_exponential_backoff(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(503), make_result(503), make_result(503))
        queue = EventQueue(
            fake_transport,
            QueueSettings(base_delay_ms=1000, max_retries=3),
            sleep=recording_sleep
        )

        await queue.enqueue(item())
        await queue.flush()

        assert recording_sleep.delays == [2.0, 4.0]
        assert recording_sleep.delays[0] >= 1.0
        assert recording_sleep.delays[1] >= 2.0

    @pytest.mark.asyncio
    async def test_base_delay_scales_backoff(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(502), make_result(502), make_result(200))
        queue = EventQueue(
            fake_transport,
            QueueSettings(base_delay_ms=50, max_retries=5),
            sleep=recording_sleep
        )

        await queue.enqueue(item())

        assert await queue.flush() == []
        assert recording_sleep.delays == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_retry_after_takes_precedence(self, fake_transport, recording_sleep):
        fake_transport.script(
            PATH,
            make_result(429, headers={"Retry-After": "5"}),
            make_result(200)
        )
        queue = EventQueue(
            fake_transport,
            QueueSettings(base_delay_ms=10, max_retries=3),
            sleep=recording_sleep
        )

        await queue.enqueue(item())

        assert await queue.flush() == []
        assert recording_sleep.delays == [5.0]

    @pytest.mark.asyncio
    async def test_retry_after_header_is_case_insensitive(self, fake_transport, recording_sleep):
        fake_transport.script(
            PATH,
            make_result(503, headers={"retry-after": "3"}),
            make_result(200)
        )
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        await queue.flush()

        assert recording_sleep.delays == [3.0]

    @pytest.mark.asyncio
    async def test_unparsable_retry_after_falls_back_to_backoff(self, fake_transport, recording_sleep):
        fake_transport.script(
            PATH,
            make_result(503, headers={"Retry-After": "soon"}),
            make_result(200)
        )
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        await queue.flush()

        assert recording_sleep.delays == [2.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400"])
    async def test_non_finite_retry_after_falls_back_to_backoff(self, fake_transport, recording_sleep, value):
        fake_transport.script(
            PATH,
            make_result(503, headers={"Retry-After": value}),
            make_result(200)
        )
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())

        assert await queue.flush() == []
        assert fake_transport.attempts(PATH) == 2
        assert recording_sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_non_finite_retry_after_keeps_real_status(self, fake_transport, recording_sleep):
        fake_transport.script(
            PATH,
            *[make_result(503, headers={"Retry-After": "inf"}) for _ in range(3)]
        )
        queue = EventQueue(fake_transport, QueueSettings(debug=True), sleep=recording_sleep)

        await queue.enqueue(item())
        errors = await queue.flush()

        assert fake_transport.attempts(PATH) == 3
        assert len(errors) == 1
        assert errors[0].code == 503
        assert "Max retries reached" in errors[0].error
        assert errors[0].item.retries == 2

    @pytest.mark.asyncio
    async def test_internal_failure_is_not_reported_as_transport_error(self, fake_transport, capsys):
        async def broken_sleep(seconds):
            raise RuntimeError("clock unavailable")

        fake_transport.script(PATH, make_result(503))
        queue = EventQueue(fake_transport, sleep=broken_sleep)

        await queue.enqueue(item())
        await queue.enqueue(item(path="/next"))
        errors = await queue.flush()

        assert errors == []
        assert [c.path for c in fake_transport.calls] == [PATH, "/next"]
        logged = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert logged[0]["event"] == "Unexpected error processing request"
        assert logged[0]["level"] == "error"
        assert "clock unavailable" in logged[0]["exception"]


class TestEventQueueOrdering:
    """One item in flight, FIFO order, retries before the next item."""

    @pytest.mark.asyncio
    async def test_items_delivered_in_submission_order(self, fake_transport, recording_sleep):
        fake_transport.script("/a", make_result(503), make_result(503), make_result(200))
        fake_transport.script("/b", make_result(429))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await asyncio.gather(
            queue.enqueue(item(path="/a")),
            queue.enqueue(item(path="/b")),
            queue.enqueue(item(path="/c")),
        )

        assert await queue.flush() == []
        assert [c.path for c in fake_transport.calls] == ["/a", "/a", "/a", "/b", "/b", "/c"]
        assert fake_transport.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_last_attempt_finishes_before_next_item_starts(self, fake_transport, recording_sleep):
        fake_transport.script("/first", make_result(502), make_result(502), make_result(502))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.submit(item(path="/first"))
        await queue.submit(item(path="/second"))
        errors = await queue.flush()

        last_first_end = max(i for i, entry in enumerate(fake_transport.log) if entry == ("end", "/first"))
        first_second_start = fake_transport.log.index(("start", "/second"))
        assert last_first_end < first_second_start
        assert [e.item.path for e in errors] == ["/first"]

    @pytest.mark.asyncio
    async def test_enqueue_resolves_after_own_processing(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(503), make_result(200))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())

        assert fake_transport.attempts(PATH) == 2
        assert queue.pending == 0


class TestEventQueueFlush:
    """Flush drains the queue and the error list."""

    @pytest.mark.asyncio
    async def test_flush_on_empty_queue(self, fake_transport):
        queue = EventQueue(fake_transport)

        assert await queue.flush() == []

    @pytest.mark.asyncio
    async def test_second_flush_returns_empty(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(400))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())

        assert len(await queue.flush()) == 1
        assert await queue.flush() == []

    @pytest.mark.asyncio
    async def test_flush_waits_for_submitted_items(self, fake_transport, recording_sleep):
        fake_transport.script("/x", make_result(503), make_result(404))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        for path in ("/x", "/y", "/z"):
            await queue.submit(item(path=path))
        assert queue.pending == 3

        errors = await queue.flush()

        assert queue.pending == 0
        assert [c.path for c in fake_transport.calls] == ["/x", "/x", "/y", "/z"]
        assert len(errors) == 1
        assert errors[0].code == 404

    @pytest.mark.asyncio
    async def test_errors_keep_item_and_code(self, fake_transport, recording_sleep):
        fake_transport.script("/bad", make_result(422))
        queue = EventQueue(fake_transport, sleep=recording_sleep)
        failing = QueueItem(path="/bad", body={"k": "v"}, idempotency_key="order-1")

        await queue.enqueue(failing)
        errors = await queue.flush()

        assert errors[0].item.path == "/bad"
        assert errors[0].item.body == {"k": "v"}
        assert errors[0].item.idempotency_key == "order-1"
        assert errors[0].code == 422


class TestEventQueueLifecycle:
    """Bounded capacity and close()."""

    @pytest.mark.asyncio
    async def test_bounded_queue_applies_backpressure(self, fake_transport, recording_sleep):
        queue = EventQueue(fake_transport, QueueSettings(max_queue_size=1), sleep=recording_sleep)

        futures = [await queue.submit(item(path=f"/p{i}")) for i in range(4)]
        await asyncio.gather(*futures)

        assert [c.path for c in fake_transport.calls] == ["/p0", "/p1", "/p2", "/p3"]
        assert await queue.flush() == []

    @pytest.mark.asyncio
    async def test_close_abandons_waiting_items(self, fake_transport):
        never = asyncio.Event()

        async def blocked_sleep(_seconds):
            await never.wait()

        fake_transport.script("/slow", make_result(503))
        queue = EventQueue(fake_transport, sleep=blocked_sleep)

        first = await queue.submit(item(path="/slow"))
        second = await queue.submit(item(path="/never"))
        while fake_transport.attempts("/slow") == 0:
            await asyncio.sleep(0)

        await queue.close()

        assert first.done() and second.done()
        assert queue.pending == 0
        assert fake_transport.attempts("/never") == 0
        assert await queue.flush() == []

    @pytest.mark.asyncio
    async def test_queue_restarts_after_close(self, fake_transport, recording_sleep):
        queue = EventQueue(fake_transport, sleep=recording_sleep)
        await queue.enqueue(item(path="/before"))
        await queue.close()

        await queue.enqueue(item(path="/after"))

        assert [c.path for c in fake_transport.calls] == ["/before", "/after"]
        await queue.close()


class TestEventQueueLogging:
    """Debug tracing is opt-in."""

    @pytest.mark.asyncio
    async def test_debug_logs_state_transitions(self, fake_transport, recording_sleep):
        fake_transport.script(PATH, make_result(503), make_result(503), make_result(503))
        queue = EventQueue(fake_transport, QueueSettings(debug=True), sleep=recording_sleep)

        with patch.object(queue, "_logger") as mock_logger:
            await queue.enqueue(item())
            await queue.flush()

        messages = [call.args[0] for call in mock_logger.debug.call_args_list]
        assert "Item enqueued" in messages
        assert "Processing request" in messages
        assert messages.count("Retrying request") == 2
        assert "Dropping request" in messages

        retry_calls = [c for c in mock_logger.debug.call_args_list if c.args[0] == "Retrying request"]
        assert retry_calls[0].kwargs["delay_ms"] == 2000
        assert retry_calls[0].kwargs["attempt"] == 1
        assert retry_calls[0].kwargs["max_retries"] == 3

    @pytest.mark.asyncio
    async def test_silent_without_debug(self, fake_transport, recording_sleep, capsys):
        fake_transport.script(PATH, make_result(503), make_result(500))
        queue = EventQueue(fake_transport, sleep=recording_sleep)

        await queue.enqueue(item())
        await queue.flush()

        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_debug_output_is_json(self, fake_transport, recording_sleep, capsys):
        queue = EventQueue(fake_transport, QueueSettings(debug=True), sleep=recording_sleep)

        await queue.enqueue(item())
        await queue.flush()

        logged = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [entry["event"] for entry in logged][:2] == ["Item enqueued", "Processing request"]
        assert all(entry["component"] == "EventQueue" for entry in logged)
        assert all(entry["level"] == "debug" for entry in logged)
        assert logged[0]["logger_name"] == "mindlytics.delivery.queue"
