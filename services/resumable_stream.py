# services/resumable_stream.py
import logging
import time
from typing import AsyncIterator, Optional

from .streaming import StreamBuffer

log = logging.getLogger(__name__)


class ResumableStreamContext:
    """
    Process-wide registry of generation buffers keyed by stream id.

    Live buffers can be joined at any time; finished buffers stay cached
    for ttl_seconds. Without a TTL the context is disabled and callers
    treat resumption as unsupported.
    """

    def __init__(self, ttl_seconds: Optional[int]):
        self.ttl_seconds = ttl_seconds
        self._streams: dict[str, StreamBuffer] = {}
        if not self.enabled:
            log.info(" > Resumable streams are disabled due to missing STREAM_CACHE_TTL_SECONDS")

    @property
    def enabled(self) -> bool:
        return bool(self.ttl_seconds)

    def create_stream(self, stream_id: str) -> StreamBuffer:
        buffer = StreamBuffer(stream_id)
        if self.enabled:
            self._evict_expired()
            self._streams[stream_id] = buffer
        return buffer

    def resume_stream(self, stream_id: str) -> Optional[AsyncIterator[dict]]:
        """Backlog plus live events of the stream, or None when it is unknown or expired."""
        if not self.enabled:
            return None
        self._evict_expired()
        buffer = self._streams.get(stream_id)
        if buffer is None:
            return None
        return buffer.subscribe()

    def _evict_expired(self) -> None:
        now = time.monotonic()
        expired = [
            stream_id for stream_id, buffer in self._streams.items()
            if buffer.closed and now - buffer.closed_at > self.ttl_seconds
        ]
        for stream_id in expired:
            del self._streams[stream_id]
