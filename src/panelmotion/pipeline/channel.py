"""Single-producer async channel used for scene patches and job progress."""

import asyncio
import logging
from typing import AsyncIterator, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """Unbounded FIFO that consumers iterate with ``async for``.

    Iteration ends once the producer calls :meth:`close` and the buffered
    items are consumed. Items published after close are dropped.
    """

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, item: T) -> None:
        if self._closed:
            logger.debug(f"Dropping item published to closed {self.name}")
            return
        self._queue.put_nowait(item)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def drain(self) -> List[T]:
        """Return the buffered items without waiting."""
        items: List[T] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            items.append(item)
        return items

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker so later iterations end too
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item
