"""Projector service: power control and last-known status for outer surfaces."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pjcontrol_link import (
    Command,
    CommandQueue,
    CommandResult,
    ItemNumber,
    LinkSession,
    LinkState,
    PowerStatus,
    SerialConfig,
)
from pjcontrol_link.transport import StreamPair

from .config import AppConfig
from .poller import StatusPoller


logger = logging.getLogger("pjcontrol.core.service")


@dataclass
class ServiceStatus:
    port: str
    link_state: LinkState
    power_status: PowerStatus
    last_change_utc: str | None
    polls_ok: int
    polls_failed: int
    open_attempts: int
    pending_commands: int


class ProjectorService:
    def __init__(
        self,
        config: AppConfig | None = None,
        opener: Callable[[SerialConfig], Awaitable[StreamPair]] | None = None,
    ) -> None:
        self.config = config or AppConfig()
        link_cfg = self.config.link
        self.link = LinkSession(
            SerialConfig(port=link_cfg.port, baudrate=link_cfg.baudrate),
            retry_delay_s=link_cfg.open_retry_s,
            opener=opener,
        )
        self.queue = CommandQueue(self.link, reply_timeout_s=link_cfg.reply_timeout_s)
        self.poller = StatusPoller(self.queue, interval_ms=self.config.poll.interval_ms, on_change=self._on_power_change)
        self._last_change_utc: str | None = None

    @property
    def power_status(self) -> PowerStatus:
        return self.poller.power_status

    def get_power_status(self) -> PowerStatus:
        return self.poller.power_status

    def status_payload(self) -> dict[str, Any]:
        return {"value": self.power_status.label}

    @property
    def status(self) -> ServiceStatus:
        return ServiceStatus(
            port=self.link.config.port,
            link_state=self.link.state,
            power_status=self.power_status,
            last_change_utc=self._last_change_utc,
            polls_ok=self.poller.polls_ok,
            polls_failed=self.poller.polls_failed,
            open_attempts=self.link.open_attempts,
            pending_commands=self.queue.pending_count,
        )

    def start(self) -> None:
        logger.info("starting projector service on %s", self.link.config.port, extra={"event": "service_start"})
        self.poller.start()

    async def stop(self) -> None:
        await self.poller.stop()
        await self.queue.stop()
        await self.link.close()
        logger.info("projector service stopped", extra={"event": "service_stop"})

    def power_on(self, on_done: Callable[[bool], None] | None = None) -> asyncio.Future:
        return self._power(ItemNumber.POWER_ON, on_done)

    def power_off(self, on_done: Callable[[bool], None] | None = None) -> asyncio.Future:
        return self._power(ItemNumber.POWER_OFF, on_done)

    def _power(self, item: ItemNumber, on_done: Callable[[bool], None] | None) -> asyncio.Future:
        command = Command.set(item)
        if on_done is not None:
            command.on_success = lambda _response: on_done(True)
            command.on_failure = lambda _error: on_done(False)
        logger.info("queueing %s", item.name, extra={"event": "power_command"})
        return self.queue.enqueue(command)

    async def poll_now(self) -> CommandResult:
        return await self.poller.poll_once()

    def _on_power_change(self, previous: PowerStatus, current: PowerStatus) -> None:
        self._last_change_utc = datetime.now(timezone.utc).isoformat()
