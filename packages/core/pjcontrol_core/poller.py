"""Self-rescheduling power status poller."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from pjcontrol_link import Command, CommandQueue, CommandResult, ItemNumber, PowerStatus


POLL_INTERVAL_MS = 5000

logger = logging.getLogger("pjcontrol.core.poller")


class StatusPoller:
    """Polls power status, waiting ``interval_ms`` after each poll resolves.

    The next poll is only scheduled once the previous one has completed, so a
    slow device stretches the cadence instead of stacking polls in the queue.
    """

    def __init__(
        self,
        queue: CommandQueue,
        interval_ms: int = POLL_INTERVAL_MS,
        on_change: Callable[[PowerStatus, PowerStatus], None] | None = None,
    ) -> None:
        self.queue = queue
        self.interval_ms = interval_ms
        self.power_status = PowerStatus.UNKNOWN
        self.polls_ok = 0
        self.polls_failed = 0
        self._on_change = on_change
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def poll_once(self) -> CommandResult:
        result = await self.queue.submit(Command.get(ItemNumber.POWER_STATUS))
        if result.ok and result.response is not None:
            self.polls_ok += 1
            self._update(PowerStatus.from_value(result.response.data))
        else:
            self.polls_failed += 1
            logger.debug("Power status poll failed: %s", result.error)
        return result

    def _update(self, status: PowerStatus) -> None:
        previous = self.power_status
        self.power_status = status
        if previous is not status:
            logger.info('Power state: "%s"', status.label, extra={"event": "power_state_changed"})
            if self._on_change is not None:
                try:
                    self._on_change(previous, status)
                except Exception:
                    logger.exception("Power state change callback failed")

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_ms / 1000)
