"""Live update channel: per-connection feed of new room messages.

Each open connection owns one ``LiveUpdateChannel``. The channel polls the
ledger on a fixed interval for messages above its watermark and queues one
``message`` event per new message. A failed poll becomes an ``error`` event
and is retried on the next tick. Closing the channel cancels the poll task
before any further store query can start.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parlor.core.settings import settings

from .rooms import messages_since, room_is_active, serialize_message

logger = logging.getLogger(__name__)

FetchSince = Callable[[int, int], list[dict[str, Any]]]
RoomCheck = Callable[[int], bool]
DisconnectCheck = Callable[[], Awaitable[bool]]
SessionFactory = Callable[[], Session]

# Store failures that should not end the stream.
_TRANSIENT_ERRORS = (SQLAlchemyError, OSError, TimeoutError)


class ChannelState(Enum):
    """Lifecycle of a live update connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class ChannelEvent:
    """One event pushed to the client."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def encode(self) -> str:
        """Render the event as a Server-Sent Events frame."""
        if self.type == "keepalive":
            return ": keepalive\n\n"
        payload = {"type": self.type, **self.data}
        return f"data: {json.dumps(payload, default=str)}\n\n"


class LiveUpdateChannel:
    """Polls one room for messages newer than the last delivered id.

    Within one channel every message id is delivered at most once and in
    increasing order; ``last_delivered_id`` only moves forward.
    """

    def __init__(
        self,
        room_id: int,
        fetch_since: FetchSince,
        *,
        room_check: RoomCheck | None = None,
        interval: float | None = None,
        last_delivered_id: int = 0,
    ) -> None:
        """Initialize the channel.

        Args:
            room_id: Room whose ledger is followed.
            fetch_since: Blocking callable returning serialized messages with
                id greater than the given watermark, ascending. Runs in a
                worker thread.
            room_check: Blocking callable reporting whether the room is still
                active; the channel closes when it returns False.
            interval: Seconds between polls; defaults to the configured value.
            last_delivered_id: Initial watermark.
        """
        self.room_id = room_id
        self.state = ChannelState.CONNECTING
        self.last_delivered_id = last_delivered_id
        self.interval = max(
            0.0,
            settings.chat_stream_poll_interval_seconds if interval is None else interval,
        )
        self._fetch_since = fetch_since
        self._room_check = room_check
        self._queue: asyncio.Queue[ChannelEvent | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    async def open(self) -> None:
        """Acknowledge the connection and start polling."""
        if self.state is not ChannelState.CONNECTING:
            return
        self.state = ChannelState.OPEN
        self._emit("connected", {"room_id": self.room_id, "last_id": self.last_delivered_id})
        self._task = asyncio.create_task(self._run())
        logger.debug("Live channel opened for room %s at id %s", self.room_id, self.last_delivered_id)

    async def close(self) -> None:
        """Stop polling. Safe to call more than once."""
        already_closed = self.state is ChannelState.CLOSED
        self.state = ChannelState.CLOSED
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Live channel task for room %s ended with an error", self.room_id)
        if not already_closed:
            self._queue.put_nowait(None)
            logger.debug("Live channel closed for room %s", self.room_id)

    async def poll_once(self) -> int:
        """Run one fetch-and-push tick.

        Returns:
            Number of message events queued.
        """
        if self.state is not ChannelState.OPEN:
            return 0
        try:
            if self._room_check is not None:
                active = await asyncio.to_thread(self._room_check, self.room_id)
                if not active:
                    self._finish("room_inactive")
                    return 0
            messages = await asyncio.to_thread(
                self._fetch_since, self.room_id, self.last_delivered_id
            )
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Live channel poll failed for room %s: %s", self.room_id, exc)
            self._report_failure()
            return 0
        except Exception:
            logger.exception("Unexpected error polling room %s", self.room_id)
            self._report_failure()
            return 0

        if self.state is not ChannelState.OPEN:
            return 0

        delivered = 0
        for message in messages:
            message_id = int(message["id"])
            if message_id <= self.last_delivered_id:
                continue
            self._emit("message", {"message": message})
            self.last_delivered_id = message_id
            delivered += 1
        return delivered

    async def events(
        self,
        is_disconnected: DisconnectCheck | None = None,
        keepalive: float | None = None,
    ) -> AsyncIterator[ChannelEvent]:
        """Open the channel and yield events until it closes or the client leaves.

        Args:
            is_disconnected: Async callable checked whenever the queue is idle
                for ``keepalive`` seconds.
            keepalive: Idle seconds before a keepalive frame; defaults to the
                configured value.
        """
        idle = settings.chat_stream_keepalive_seconds if keepalive is None else keepalive
        await self.open()
        try:
            while True:
                try:
                    event = await asyncio.wait_for(self._queue.get(), timeout=idle)
                except TimeoutError:
                    if is_disconnected is not None and await is_disconnected():
                        break
                    yield ChannelEvent("keepalive")
                    continue
                if event is None:
                    break
                yield event
        finally:
            await self.close()

    async def _run(self) -> None:
        while self.state is ChannelState.OPEN:
            await self.poll_once()
            if self.state is not ChannelState.OPEN:
                break
            await asyncio.sleep(self.interval)

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        self._queue.put_nowait(ChannelEvent(event_type, data))

    def _report_failure(self) -> None:
        if self.state is ChannelState.OPEN:
            self._emit("error", {"error": "Failed to fetch messages"})

    def _finish(self, reason: str) -> None:
        """Close from inside the poll task, telling the client why."""
        self.state = ChannelState.CLOSED
        self._emit("closed", {"reason": reason})
        self._queue.put_nowait(None)
        logger.info("Live channel for room %s closed: %s", self.room_id, reason)


def store_fetcher(session_factory: SessionFactory, viewer_email: str | None) -> FetchSince:
    """Build a fetch function reading the ledger through a fresh session per tick."""

    def fetch(room_id: int, after_id: int) -> list[dict[str, Any]]:
        with session_factory() as db:
            return [
                serialize_message(message, viewer_email).model_dump(mode="json")
                for message in messages_since(db, room_id=room_id, after_id=after_id)
            ]

    return fetch


def store_room_check(session_factory: SessionFactory) -> RoomCheck:
    """Build a room liveness check using a fresh session per call."""

    def check(room_id: int) -> bool:
        with session_factory() as db:
            return room_is_active(db, room_id)

    return check
