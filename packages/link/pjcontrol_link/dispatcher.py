"""FIFO command dispatcher enforcing a single command in flight."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from .frame import encode_frame, parse_response
from .models import Command, CommandFailed, CommandResult, LinkClosedError, LinkState
from .transport import LinkSession


logger = logging.getLogger("pjcontrol.link.dispatcher")


class CommandQueue:
    """Sends queued commands one at a time and matches replies to them.

    A single worker task drains the queue in arrival order. The reply waiter
    ignores chunks while the frame is still being written, so only chunks
    received in AwaitingReply resolve the active command, valid frame or not.
    Chunks arriving at any other time are dropped.
    """

    def __init__(self, link: LinkSession, reply_timeout_s: float | None = None) -> None:
        self.link = link
        self.reply_timeout_s = reply_timeout_s

        self._pending: deque[Command] = deque()
        self._active: Command | None = None
        self._reply: asyncio.Future | None = None
        self._wakeup = asyncio.Event()
        self._worker: asyncio.Task | None = None

        link.subscribe(self._on_chunk)
        link.on_lost(self._on_link_lost)

    @property
    def active(self) -> Command | None:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def enqueue(self, command: Command) -> asyncio.Future:
        """Queue a command; the returned future may be cancelled without withdrawing it."""
        if command.future is None:
            command.future = asyncio.get_running_loop().create_future()
        self._pending.append(command)
        self._pump()
        return asyncio.shield(command.future)

    async def submit(self, command: Command) -> CommandResult:
        return await self.enqueue(command)

    def _pump(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())
        self._wakeup.set()

    async def _run(self) -> None:
        while True:
            if not self._pending:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            if not self.link.is_open:
                try:
                    await self.link.ensure_open()
                except Exception:
                    logger.exception("Unexpected error opening the serial port")
                    await asyncio.sleep(self.link.retry_delay_s)
                continue

            command = self._pending.popleft()
            self._active = command
            try:
                result = await self._transmit(command)
            finally:
                self._active = None
                self.link.release()
            self._finish(command, result)

    async def _transmit(self, command: Command) -> CommandResult:
        frame = encode_frame(command.item_number, command.is_get, command.data)
        expects = command.expects_reply

        if expects:
            self._reply = asyncio.get_running_loop().create_future()
        try:
            ok, _ = await self.link.send(frame, expects_reply=expects)
            if not ok:
                return CommandResult(ok=False, error=CommandFailed("write failed"))
            if not expects:
                return CommandResult(ok=True)
            if self._reply.done():
                return self._reply.result()
            if self.reply_timeout_s is None:
                return await self._reply
            return await asyncio.wait_for(self._reply, self.reply_timeout_s)
        except asyncio.TimeoutError:
            logger.error(
                "No reply for item 0x%04X after %.1fs",
                command.item_number,
                self.reply_timeout_s,
                extra={"event": "reply_timeout", "item": command.item_number},
            )
            return CommandResult(ok=False, error=CommandFailed("reply timed out"))
        finally:
            self._reply = None

    def _on_chunk(self, data: bytes) -> None:
        waiter = self._reply
        if waiter is None or waiter.done():
            logger.debug("Dropping %d bytes with no command awaiting a reply", len(data))
            return
        if self.link.state is LinkState.SENDING:
            logger.debug("Dropping %d bytes received while sending", len(data))
            return
        response = parse_response(data)
        if response is None:
            waiter.set_result(CommandResult(ok=False, error=CommandFailed("invalid response frame")))
        else:
            waiter.set_result(CommandResult(ok=True, response=response))

    def _on_link_lost(self, exc: Exception) -> None:
        waiter = self._reply
        if waiter is not None and not waiter.done():
            waiter.set_result(CommandResult(ok=False, error=LinkClosedError(str(exc))))

    def _finish(self, command: Command, result: CommandResult) -> None:
        try:
            command.resolve(result)
        except Exception:
            logger.exception("Completion callback failed for item 0x%04X", command.item_number)

    async def stop(self) -> None:
        """Stop the worker and fail everything still queued or in flight."""
        worker = self._worker
        self._worker = None
        victims = [self._active] if self._active is not None else []
        victims.extend(self._pending)
        self._pending.clear()

        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        for command in victims:
            self._finish(command, CommandResult(ok=False, error=CommandFailed("dispatcher stopped")))
