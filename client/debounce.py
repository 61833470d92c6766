# client/debounce.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import config

logger = logging.getLogger(__name__)


class Debouncer:
    """Propagates a value only after it has stayed unchanged for ``delay`` seconds.

    Every ``push`` cancels the pending timer, so only the latest value reaches
    the callback. ``push`` must be called from inside a running event loop.
    The callback may be a coroutine function; its task is kept on ``task``.
    """

    def __init__(
        self,
        callback: Callable[[Any], Union[None, Awaitable[None]]],
        delay: float = config.SEARCH_DEBOUNCE_SECONDS,
        initial: Any = None,
    ):
        self.callback = callback
        self.delay = delay
        self.value = initial
        self.task: Optional[asyncio.Task] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: Any):
        loop = asyncio.get_running_loop()
        self.cancel()
        self._pending = value
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self):
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None

    def _fire(self):
        value = self._pending
        self._handle = None
        self._pending = None
        self.value = value
        logger.debug(f"Debounced value propagated: {value!r}")
        result = self.callback(value)
        if asyncio.iscoroutine(result):
            self.task = asyncio.ensure_future(result)
