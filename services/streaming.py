# services/streaming.py
import asyncio
import json
import logging
import re
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Coroutine, List, Optional

log = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+\s+")

DONE = "[DONE]"


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def encode_event(event: dict) -> str:
    return json.dumps(event, default=_json_default)


async def sse_frames(events: AsyncIterator[dict]) -> AsyncIterator[dict]:
    """UI events -> sse-starlette frames, ending with the [DONE] marker."""
    async for event in events:
        yield {"data": encode_event(event)}
    yield {"data": DONE}


class StreamBuffer:
    """
    One generation's event log. The producer writes events; any number of
    subscribers get the backlog first and then follow live events until
    the buffer is closed.
    """

    def __init__(self, stream_id: Optional[str] = None):
        self.stream_id = stream_id
        self.events: List[dict] = []
        self.closed = False
        self.closed_at: Optional[float] = None
        self._listeners: set[asyncio.Queue] = set()

    def write(self, event: dict) -> None:
        if self.closed:
            log.debug("write after close on stream %s dropped: %s", self.stream_id, event.get("type"))
            return
        self.events.append(event)
        for queue in self._listeners:
            queue.put_nowait(event)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.closed_at = time.monotonic()
        for queue in self._listeners:
            queue.put_nowait(None)

    async def subscribe(self) -> AsyncIterator[dict]:
        # Snapshot and registration happen without awaiting in between,
        # so no event is lost or duplicated.
        backlog = list(self.events)
        queue: Optional[asyncio.Queue] = None
        if not self.closed:
            queue = asyncio.Queue()
            self._listeners.add(queue)
        try:
            for event in backlog:
                yield event
            if queue is None:
                return
            while True:
                event = await queue.get()
                if event is None:
                    return
                yield event
        finally:
            if queue is not None:
                self._listeners.discard(queue)


class WordSmoother:
    """Re-chunks model text deltas into whole words (word plus trailing whitespace)."""

    def __init__(self):
        self._pending = ""

    def push(self, delta: str) -> List[str]:
        self._pending += delta
        words = []
        while True:
            match = _WORD_RE.match(self._pending)
            if not match:
                break
            words.append(match.group(0))
            self._pending = self._pending[match.end():]
        return words

    def flush(self) -> str:
        rest, self._pending = self._pending, ""
        return rest


class ChatLocks:
    """Per-chat asyncio locks: one writer at a time prepares a given chat."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)


class GenerationTasks:
    """Keeps references to running generation tasks so they outlive their request."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
