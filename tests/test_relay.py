"""
Tests for the per-session relay loop.

This module drives the relay loop with a fake remote channel and checks the
events it emits, the order they arrive in and how the loop terminates.
"""

import asyncio
from typing import Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from shellrelay.core.domain.events import SessionEventKind
from shellrelay.core.domain.messages import (
    ChannelClosed, ChannelData, ChannelExitStatus, InputMessage, ResizeMessage
)
from shellrelay.core.domain.session import RelayState
from shellrelay.core.services.control import ControlSender, create_control_channel
from shellrelay.core.services.relay import RelayLoop

from conftest import FakeChannel, RecordingSink


def make_relay(channel: FakeChannel, sink: RecordingSink, **kwargs) -> Tuple[RelayLoop, ControlSender]:
    sender, receiver = create_control_channel()
    return RelayLoop("s1", channel, receiver, sink, **kwargs), sender


async def run_relay(relay: RelayLoop) -> RelayState:
    return await asyncio.wait_for(relay.run(), timeout=2.0)


class TestRelayOutput:
    """Remote output handling."""

    @pytest.mark.asyncio
    async def test_output_is_emitted_in_arrival_order(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, _ = make_relay(channel, recording_sink)

        for chunk in (b"one", b"two", b"three"):
            channel.feed(ChannelData(chunk))
        channel.feed(ChannelExitStatus(0))

        assert await run_relay(relay) == RelayState.TERMINATED

        outputs = [e.payload for e in recording_sink.of("s1", SessionEventKind.OUTPUT)]
        assert outputs == [b"one", b"two", b"three"]
        assert relay.stats.bytes_received == len(b"onetwothree")
        assert relay.stats.chunks_received == 3

    @pytest.mark.asyncio
    async def test_exit_status_emits_exit_then_closed(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, _ = make_relay(channel, recording_sink)

        channel.feed(ChannelData(b"bye\r\n"))
        channel.feed(ChannelExitStatus(3))
        channel.feed(ChannelData(b"never seen"))

        await run_relay(relay)

        assert recording_sink.kinds("s1") == [
            SessionEventKind.OUTPUT, SessionEventKind.EXIT, SessionEventKind.CLOSED
        ]
        assert recording_sink.of("s1", SessionEventKind.EXIT)[0].payload == 3
        assert relay.close_reason == "exit"
        assert channel.close_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("end_event", [None, ChannelClosed(), ChannelClosed("reset by peer")])
    async def test_remote_close_terminates_without_exit_event(self, recording_sink: RecordingSink,
                                                              end_event) -> None:
        channel = FakeChannel()
        relay, _ = make_relay(channel, recording_sink)

        channel.feed(ChannelData(b"partial"))
        channel.feed(end_event)

        await run_relay(relay)

        assert recording_sink.kinds("s1") == [SessionEventKind.OUTPUT, SessionEventKind.CLOSED]
        assert recording_sink.of("s1", SessionEventKind.CLOSED)[0].payload == {"reason": "remote_closed"}
        assert relay.close_reason == "remote_closed"

    @pytest.mark.asyncio
    async def test_remote_error_emits_error_event(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        channel.wait = AsyncMock(side_effect=OSError("connection reset"))  # type: ignore[method-assign]
        relay, _ = make_relay(channel, recording_sink)

        await run_relay(relay)

        assert recording_sink.kinds("s1") == [SessionEventKind.ERROR, SessionEventKind.CLOSED]
        assert "connection reset" in recording_sink.of("s1", SessionEventKind.ERROR)[0].payload
        assert relay.close_reason == "error"
        assert relay.stats.last_error == "connection reset"


class TestRelayControl:
    """Consumer command handling."""

    @pytest.mark.asyncio
    async def test_inputs_are_written_in_send_order(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink)

        sender.send(InputMessage(b"ls"))
        sender.send(InputMessage(b" -la"))
        sender.send(InputMessage(b"\n"))
        sender.close()

        await run_relay(relay)

        assert channel.writes == [b"ls", b" -la", b"\n"]
        assert relay.stats.inputs_forwarded == 3

    @pytest.mark.asyncio
    async def test_inputs_queued_before_disconnect_are_written_once(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink)
        task = asyncio.ensure_future(relay.run())
        await asyncio.sleep(0.01)

        # Queued while the relay is blocked on both sources.
        for chunk in (b"cd /tmp\n", b"ls\n", b"exit\n"):
            sender.send(InputMessage(chunk))
        sender.close()
        channel.feed(ChannelData(b"$ "))

        assert await asyncio.wait_for(task, 2.0) == RelayState.TERMINATED

        assert channel.writes == [b"cd /tmp\n", b"ls\n", b"exit\n"]
        assert relay.stats.inputs_forwarded == 3
        assert relay.close_reason == "disconnected"

    @pytest.mark.asyncio
    async def test_resize_is_applied(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink)

        sender.send(ResizeMessage(120, 40))
        sender.close()

        await run_relay(relay)

        assert channel.resizes == [(120, 40)]
        assert relay.stats.resizes_applied == 1

    @pytest.mark.asyncio
    async def test_closing_control_channel_disconnects(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink)

        task = asyncio.ensure_future(relay.run())
        await asyncio.sleep(0.01)
        assert relay.state == RelayState.RUNNING

        sender.close()
        assert await asyncio.wait_for(task, 2.0) == RelayState.TERMINATED

        assert relay.close_reason == "disconnected"
        assert channel.close_count == 1
        assert recording_sink.kinds("s1") == [SessionEventKind.CLOSED]

    @pytest.mark.asyncio
    async def test_write_failure_is_absorbed(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel(fail_writes=True)
        relay, sender = make_relay(channel, recording_sink)

        sender.send(InputMessage(b"lost"))
        sender.send(ResizeMessage(90, 30))
        sender.close()

        await run_relay(relay)

        assert relay.stats.write_failures == 1
        assert channel.resizes == [(90, 30)]
        assert relay.close_reason == "disconnected"
        assert SessionEventKind.ERROR not in recording_sink.kinds("s1")

    @pytest.mark.asyncio
    async def test_resize_failure_is_absorbed(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel(fail_resizes=True)
        relay, sender = make_relay(channel, recording_sink)

        sender.send(ResizeMessage(90, 30))
        sender.send(InputMessage(b"still works"))
        sender.close()

        await run_relay(relay)

        assert relay.stats.resize_failures == 1
        assert channel.writes == [b"still works"]
        assert SessionEventKind.ERROR not in recording_sink.kinds("s1")

    @pytest.mark.asyncio
    async def test_output_and_input_interleave(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink)
        task = asyncio.ensure_future(relay.run())

        channel.feed(ChannelData(b"$ "))
        await asyncio.sleep(0.01)
        sender.send(InputMessage(b"echo hi\n"))
        await asyncio.sleep(0.01)
        channel.feed(ChannelData(b"hi\r\n"))
        channel.feed(ChannelExitStatus(0))

        await asyncio.wait_for(task, 2.0)

        assert channel.writes == [b"echo hi\n"]
        outputs = [e.payload for e in recording_sink.of("s1", SessionEventKind.OUTPUT)]
        assert outputs == [b"$ ", b"hi\r\n"]


class TestRelayTermination:
    """Termination bookkeeping."""

    @pytest.mark.asyncio
    async def test_cleanup_runs_exactly_once(self, recording_sink: RecordingSink) -> None:
        cleanup = AsyncMock()
        channel = FakeChannel()
        relay, sender = make_relay(channel, recording_sink, on_terminated=cleanup)

        channel.feed(ChannelExitStatus(0))
        sender.close()

        await run_relay(relay)

        cleanup.assert_awaited_once()
        assert len(recording_sink.of("s1", SessionEventKind.CLOSED)) == 1

    @pytest.mark.asyncio
    async def test_cleanup_precedes_exit_event_and_channel_close(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        channel.close_gate = asyncio.Event()
        cleaned = asyncio.Event()

        async def cleanup() -> None:
            assert not recording_sink.of("s1", SessionEventKind.EXIT)
            cleaned.set()

        relay, _ = make_relay(channel, recording_sink, on_terminated=cleanup)
        task = asyncio.ensure_future(relay.run())
        channel.feed(ChannelExitStatus(0))

        await recording_sink.wait_for("s1", SessionEventKind.EXIT)
        assert cleaned.is_set()
        assert relay.state == RelayState.TERMINATING

        channel.close_gate.set()
        assert await asyncio.wait_for(task, 2.0) == RelayState.TERMINATED
        assert recording_sink.kinds("s1") == [SessionEventKind.EXIT, SessionEventKind.CLOSED]

    @pytest.mark.asyncio
    async def test_cancellation_still_cleans_up(self, recording_sink: RecordingSink) -> None:
        cleanup = AsyncMock()
        channel = FakeChannel()
        relay, _ = make_relay(channel, recording_sink, on_terminated=cleanup)

        task = asyncio.ensure_future(relay.run())
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert relay.state == RelayState.TERMINATED
        assert relay.close_reason == "cancelled"
        assert channel.close_count == 1
        cleanup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_stop_relay(self) -> None:
        sink = Mock()
        sink.emit = AsyncMock(side_effect=RuntimeError("consumer gone"))
        channel = FakeChannel()
        relay, sender = make_relay(channel, sink)

        channel.feed(ChannelData(b"x"))
        sender.send(InputMessage(b"y"))
        channel.feed(ChannelExitStatus(0))

        assert await run_relay(relay) == RelayState.TERMINATED
        assert sink.emit.await_count >= 2

    @pytest.mark.asyncio
    async def test_channel_close_failure_is_ignored(self, recording_sink: RecordingSink) -> None:
        channel = FakeChannel()
        channel.close = AsyncMock(side_effect=OSError("already closed"))  # type: ignore[method-assign]
        relay, sender = make_relay(channel, recording_sink)

        sender.close()

        assert await run_relay(relay) == RelayState.TERMINATED
        assert recording_sink.kinds("s1") == [SessionEventKind.CLOSED]
