"""Chunk buffering for a single recording session.

``ChunkStream`` is the per-session channel the recorder pushes chunks into;
``ChunkAggregator`` collects them in arrival order and concatenates them
into one payload when recording stops.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from voice_assistant.core.models import AudioChunk, AudioPayload

logger = logging.getLogger(__name__)

_END = object()


class ChunkStream:
    """Single-use, ordered channel of audio chunks backed by ``asyncio.Queue``.

    Producers call ``put``/``close`` on the event loop thread, or the
    ``*_threadsafe`` variants from an audio callback thread. Iteration ends
    once the stream is closed and drained; a stream can be iterated once.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._consumed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, data: bytes) -> None:
        """Enqueue one chunk. Ignored once the stream is closed."""
        if self._closed:
            logger.warning("Dropping %d-byte chunk delivered after stream close", len(data))
            return
        self._queue.put_nowait(AudioChunk(bytes(data)))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    def put_threadsafe(self, data: bytes) -> None:
        self._loop.call_soon_threadsafe(self.put, data)

    def close_threadsafe(self) -> None:
        self._loop.call_soon_threadsafe(self.close)

    def __aiter__(self) -> AsyncIterator[AudioChunk]:
        if self._consumed:
            raise RuntimeError("ChunkStream can only be consumed once")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[AudioChunk]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item


class ChunkAggregator:
    """Ordered buffer of the chunks recorded in the current session.

    ``finalize`` never clears the buffer; the owner calls ``reset`` so the
    point where the buffer changes hands is explicit.
    """

    def __init__(self) -> None:
        self._chunks: list[AudioChunk] = []

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def total_bytes(self) -> int:
        return sum(chunk.size for chunk in self._chunks)

    def append(self, chunk: AudioChunk) -> None:
        """Append a chunk; zero-size chunks are dropped."""
        if chunk.size == 0:
            logger.debug("Ignoring empty audio chunk")
            return
        self._chunks.append(chunk)
        logger.debug(
            "Added audio chunk: %d bytes, buffer now has %d chunks",
            chunk.size,
            len(self._chunks),
        )

    def finalize(self, media_type: str) -> AudioPayload:
        """Concatenate buffered chunks in insertion order."""
        payload = AudioPayload(
            data=b"".join(chunk.data for chunk in self._chunks),
            media_type=media_type,
        )
        logger.info(
            "Finalized payload: %d chunks, %d bytes (%s)",
            len(self._chunks),
            payload.size,
            media_type,
        )
        return payload

    def reset(self) -> None:
        """Clear the buffer."""
        self._chunks.clear()
