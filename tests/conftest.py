"""
Shared fixtures and fakes for the shellrelay test suite.

The fakes stand in for the SSH transport and the event consumer so relay and
manager behaviour can be driven deterministically.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from shellrelay.core.domain.events import SessionEvent, SessionEventKind
from shellrelay.core.domain.messages import ChannelEvent
from shellrelay.core.domain.session import ConnectionParameters
from shellrelay.core.exceptions import ControlError, SessionError, WriteError
from shellrelay.core.interfaces.sessions import IEventSink, IRemoteChannel, ISessionEstablisher


class FakeChannel(IRemoteChannel):
    """Remote channel fed from a queue; records writes, resizes and closes."""

    def __init__(self, fail_writes: bool = False, fail_resizes: bool = False) -> None:
        self.events: 'asyncio.Queue[Optional[ChannelEvent]]' = asyncio.Queue()
        self.writes: List[bytes] = []
        self.resizes: List[Tuple[int, int]] = []
        self.close_count = 0
        self.fail_writes = fail_writes
        self.fail_resizes = fail_resizes
        # When set, close() blocks until the event is released.
        self.close_gate: Optional[asyncio.Event] = None

    def feed(self, event: Optional[ChannelEvent]) -> None:
        self.events.put_nowait(event)

    async def wait(self) -> Optional[ChannelEvent]:
        return await self.events.get()

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise WriteError("broken pipe")
        self.writes.append(data)

    async def resize(self, columns: int, rows: int) -> None:
        if self.fail_resizes:
            raise ControlError("window-change rejected")
        self.resizes.append((columns, rows))

    async def close(self) -> None:
        self.close_count += 1
        if self.close_gate is not None:
            await self.close_gate.wait()

    @property
    def closed(self) -> bool:
        return self.close_count > 0


class FakeEstablisher(ISessionEstablisher):
    """
    Establisher returning pre-made channels or raising pre-set errors.

    ``gate`` can be set to an Event to hold establishment until released.
    """

    def __init__(self) -> None:
        self.channels: Dict[str, FakeChannel] = {}
        self.errors: Dict[str, SessionError] = {}
        self.calls: List[ConnectionParameters] = []
        self.gate: Optional[asyncio.Event] = None

    def channel_for(self, host: str) -> FakeChannel:
        if host not in self.channels:
            self.channels[host] = FakeChannel()
        return self.channels[host]

    async def establish(self, params: ConnectionParameters) -> IRemoteChannel:
        self.calls.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if params.host in self.errors:
            raise self.errors[params.host]
        return self.channel_for(params.host)


class RecordingSink(IEventSink):
    """Event sink that records every event in emission order."""

    def __init__(self) -> None:
        self.events: List[SessionEvent] = []
        self._changed = asyncio.Condition()

    async def emit(self, event: SessionEvent) -> None:
        async with self._changed:
            self.events.append(event)
            self._changed.notify_all()

    def of(self, session_id: str, kind: Optional[SessionEventKind] = None) -> List[SessionEvent]:
        return [
            e for e in self.events
            if e.session_id == session_id and (kind is None or e.kind == kind)
        ]

    def kinds(self, session_id: str) -> List[SessionEventKind]:
        return [e.kind for e in self.of(session_id)]

    async def wait_for(self, session_id: str, kind: SessionEventKind, timeout: float = 2.0) -> SessionEvent:
        async def _wait() -> SessionEvent:
            async with self._changed:
                while True:
                    found = self.of(session_id, kind)
                    if found:
                        return found[-1]
                    await self._changed.wait()

        return await asyncio.wait_for(_wait(), timeout)


@pytest.fixture
def fake_establisher() -> FakeEstablisher:
    return FakeEstablisher()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()
