"""In-process event bus and debouncing primitive."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

_logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent")
Handler = Callable[[Any], Awaitable[None]]


class EventBus:
    """Typed publish/subscribe; handlers run in subscription order."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(
        self, event_type: type[TEvent], handler: Callable[[TEvent], Awaitable[None]]
    ) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: object) -> None:
        """Deliver an event; a failing handler does not stop the others."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event)
            except Exception:
                _logger.exception(
                    "Event handler failed",
                    extra={
                        "event_type": type(event).__name__,
                        "handler": getattr(handler, "__name__", repr(handler)),
                    },
                )


class Debouncer:
    """Runs only the latest call per key once no new call arrived for delay_seconds."""

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self._timers: dict[Hashable, asyncio.Task[None]] = {}

    def call(self, key: Hashable, func: Callable[[], Awaitable[None]]) -> None:
        pending = self._timers.pop(key, None)
        if pending is not None:
            pending.cancel()
        self._timers[key] = asyncio.get_running_loop().create_task(
            self._run_later(key, func)
        )

    async def _run_later(
        self, key: Hashable, func: Callable[[], Awaitable[None]]
    ) -> None:
        await asyncio.sleep(self.delay_seconds)
        # Past this point a newer call no longer cancels this run.
        if self._timers.get(key) is asyncio.current_task():
            del self._timers[key]
        try:
            await func()
        except Exception:
            _logger.exception("Debounced call failed", extra={"key": str(key)})

    async def flush(self) -> None:
        """Wait for all pending timers to fire."""
        while self._timers:
            await asyncio.gather(*list(self._timers.values()), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._timers)
