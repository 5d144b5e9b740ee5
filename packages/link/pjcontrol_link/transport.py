"""Serial link session: owns the port, retries opens, and fans out inbound chunks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import serial
import serial_asyncio
from serial.tools import list_ports

from .frame import hex_bytes
from .models import LinkClosedError, LinkState, SerialDevice


DEFAULT_PORT = "/dev/ttyAMA0"
DEFAULT_BAUDRATE = 38400
OPEN_RETRY_S = 5.0
READ_SIZE = 64

logger = logging.getLogger("pjcontrol.link.transport")

StreamPair = tuple[asyncio.StreamReader, asyncio.StreamWriter]


@dataclass
class SerialConfig:
    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_EVEN
    stopbits: float = serial.STOPBITS_ONE


async def open_serial(config: SerialConfig) -> StreamPair:
    return await serial_asyncio.open_serial_connection(
        url=config.port,
        baudrate=config.baudrate,
        bytesize=config.bytesize,
        parity=config.parity,
        stopbits=config.stopbits,
        xonxoff=False,
        rtscts=False,
    )


class LinkSession:
    """Half-duplex serial link with indefinite open retry.

    Opens are shared: any number of callers awaiting :meth:`ensure_open`
    join the same in-flight attempt. Inbound bytes are delivered to
    subscribers chunk by chunk, exactly as read from the port.
    """

    def __init__(
        self,
        config: SerialConfig | None = None,
        retry_delay_s: float = OPEN_RETRY_S,
        opener: Callable[[SerialConfig], Awaitable[StreamPair]] | None = None,
        read_size: int = READ_SIZE,
    ) -> None:
        self.config = config or SerialConfig()
        self.retry_delay_s = retry_delay_s
        self.read_size = read_size
        self.state = LinkState.CLOSED
        self.open_attempts = 0

        self._opener = opener or open_serial
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._open_task: asyncio.Task | None = None
        self._read_task: asyncio.Task | None = None
        self._chunk_handlers: list[Callable[[bytes], None]] = []
        self._lost_handlers: list[Callable[[Exception], None]] = []

    @property
    def is_open(self) -> bool:
        return self._writer is not None and self.state not in (LinkState.CLOSED, LinkState.OPENING)

    def subscribe(self, handler: Callable[[bytes], None]) -> None:
        self._chunk_handlers.append(handler)

    def on_lost(self, handler: Callable[[Exception], None]) -> None:
        self._lost_handlers.append(handler)

    def _set_state(self, state: LinkState) -> None:
        if state is not self.state:
            logger.debug(
                "Link state %s -> %s",
                self.state.value,
                state.value,
                extra={"event": "link_state", "state": state.value},
            )
        self.state = state

    async def ensure_open(self, on_ready: Callable[[], None] | None = None) -> None:
        if not self.is_open:
            if self._open_task is None or self._open_task.done():
                self._open_task = asyncio.create_task(self._open_with_retry())
            await asyncio.shield(self._open_task)
        if on_ready is not None:
            on_ready()

    async def _open_with_retry(self) -> None:
        while True:
            self._set_state(LinkState.OPENING)
            self.open_attempts += 1
            logger.info(
                "Attempting to open the serial port %s...",
                self.config.port,
                extra={"event": "port_open_attempt", "port": self.config.port, "attempt": self.open_attempts},
            )
            try:
                reader, writer = await self._opener(self.config)
            except (serial.SerialException, OSError) as exc:
                self._set_state(LinkState.CLOSED)
                logger.error("Error opening the serial port. %s", exc, extra={"event": "port_open_failed", "port": self.config.port})
                await asyncio.sleep(self.retry_delay_s)
                continue

            self._reader = reader
            self._writer = writer
            self._set_state(LinkState.IDLE)
            self._read_task = asyncio.create_task(self._read_loop(reader))
            logger.info("Serial port opened", extra={"event": "port_opened", "port": self.config.port})
            return

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        try:
            while True:
                data = await reader.read(self.read_size)
                if not data:
                    raise LinkClosedError("serial port reached end of stream")
                logger.debug("R: %s", hex_bytes(data), extra={"event": "chunk_received", "frame_hex": data.hex()})
                if self.state is LinkState.AWAITING_REPLY:
                    self._set_state(LinkState.IDLE)
                for handler in list(self._chunk_handlers):
                    handler(data)
        except (serial.SerialException, OSError, LinkClosedError) as exc:
            logger.error("Serial link lost. %s", exc, extra={"event": "link_lost", "port": self.config.port})
            self._drop(exc)

    def _drop(self, exc: Exception) -> None:
        writer = self._writer
        self._reader = None
        self._writer = None
        self._read_task = None
        self._set_state(LinkState.CLOSED)
        if writer is not None:
            writer.close()
        for handler in list(self._lost_handlers):
            handler(exc)

    async def send(self, frame: bytes, expects_reply: bool = True) -> tuple[bool, int]:
        """Write one frame; returns ``(ok, bytes_written)``."""
        if not self.is_open:
            logger.error("Error when sending command. Serial port is not open")
            return False, 0

        self._set_state(LinkState.SENDING)
        logger.debug("S: %s", hex_bytes(frame), extra={"event": "frame_sent", "frame_hex": frame.hex()})
        try:
            self._writer.write(frame)
            await self._writer.drain()
        except (serial.SerialException, OSError) as exc:
            logger.error("Error when sending command. %s", exc, extra={"event": "write_failed"})
            if self.state is LinkState.SENDING:
                self._set_state(LinkState.IDLE)
            return False, 0

        logger.debug("Sent %d bytes", len(frame))
        if self.state is LinkState.SENDING:
            self._set_state(LinkState.AWAITING_REPLY if expects_reply else LinkState.IDLE)
        return True, len(frame)

    def release(self) -> None:
        """Return from AwaitingReply to Idle without a reply (reply timeout)."""
        if self.state is LinkState.AWAITING_REPLY:
            self._set_state(LinkState.IDLE)

    async def close(self) -> None:
        for task in (self._open_task, self._read_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._open_task = None
        self._read_task = None
        if self._writer is not None:
            self._writer.close()
        self._reader = None
        self._writer = None
        self._set_state(LinkState.CLOSED)

    @staticmethod
    def discover() -> list[SerialDevice]:
        devices: list[SerialDevice] = []
        for item in list_ports.comports():
            devices.append(
                SerialDevice(
                    device=item.device,
                    description=item.description,
                    hwid=item.hwid,
                    vid=item.vid,
                    pid=item.pid,
                )
            )
        return devices
