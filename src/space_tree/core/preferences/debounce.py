"""Cancel-and-replace timers on the running event loop."""

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

Action = Callable[[], Awaitable[None]]


class Debouncer:
    """Run the latest action per key once its quiet window has passed.

    Scheduling a key that already has a pending action cancels it, so only the
    last action within the window runs.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[None]] = {}

    def schedule(self, key: str, delay: float, action: Action) -> None:
        if self.cancel(key):
            logger.debug("Debounce {}: replaced pending action", key)
        task = asyncio.get_running_loop().create_task(self._run(key, delay, action))
        self._pending[key] = task

    async def _run(self, key: str, delay: float, action: Action) -> None:
        await asyncio.sleep(delay)
        # Once the action starts it is no longer cancellable by a new schedule
        if self._pending.get(key) is asyncio.current_task():
            del self._pending[key]
        await action()

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def cancel(self, key: str) -> bool:
        """Cancel the pending action for ``key``; True if there was one."""
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    async def wait(self) -> None:
        """Wait until every currently pending action has run."""
        tasks = list(self._pending.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
