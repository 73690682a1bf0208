from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

STATUS = "status"
PROGRESS = "progress"
ERROR = "error"
COMPLETE = "complete"
EVENT_TYPES = (STATUS, PROGRESS, ERROR, COMPLETE)


@dataclass
class StreamEvent:
    type: str
    message: str
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


EventSink = Callable[[StreamEvent], Any]

_CLOSE = object()


class EventChannel:
    """Queue between the pipeline and a progress consumer.

    The pipeline only enqueues; a separate task drains the queue into the
    sink. Sink errors are logged and dropped so they cannot reach pipeline
    state. Use as ``async with EventChannel(sink) as events``.
    """

    def __init__(self, sink: Optional[EventSink] = None) -> None:
        self.sink = sink
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "EventChannel":
        if self.sink is not None:
            self._consumer = asyncio.create_task(self._drain())
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def emit(self, type: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        if type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {type}")
        if self.sink is None:
            return
        self._queue.put_nowait(StreamEvent(type, message, data))

    async def close(self) -> None:
        if self._consumer is None:
            return
        self._queue.put_nowait(_CLOSE)
        await self._consumer
        self._consumer = None

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _CLOSE:
                return
            try:
                outcome = self.sink(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:  # noqa: BLE001 - sink failures stay out of the pipeline
                logger.warning("Progress sink failed on %s event: %s", event.type, exc)
