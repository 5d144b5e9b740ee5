"""Typed models for projector commands, responses, and link state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable


IR_EMULATION_LOW_BYTES = frozenset({0x17, 0x19, 0x1B})


class LinkState(str, Enum):
    CLOSED = "Closed"
    OPENING = "Opening"
    IDLE = "Idle"
    SENDING = "Sending"
    AWAITING_REPLY = "AwaitingReply"


class ItemNumber(IntEnum):
    POWER_STATUS = 0x0102
    POWER_ON = 0x172E
    POWER_OFF = 0x172F


class PowerStatus(IntEnum):
    UNKNOWN = -1
    STANDBY = 0
    STARTUP = 1
    STARTUP_LAMP = 2
    POWER_ON = 3
    COOLING1 = 4
    COOLING2 = 5
    SAVING_COOLING1 = 6
    SAVING_COOLING2 = 7
    SAVING_STANDBY = 8

    @classmethod
    def from_value(cls, value: int) -> "PowerStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    PowerStatus.UNKNOWN: "Unknown",
    PowerStatus.STANDBY: "Standby",
    PowerStatus.STARTUP: "Startup",
    PowerStatus.STARTUP_LAMP: "StartupLamp",
    PowerStatus.POWER_ON: "PowerOn",
    PowerStatus.COOLING1: "Cooling1",
    PowerStatus.COOLING2: "Cooling2",
    PowerStatus.SAVING_COOLING1: "SavingCooling1",
    PowerStatus.SAVING_COOLING2: "SavingCooling2",
    PowerStatus.SAVING_STANDBY: "SavingStandby",
}


def expects_reply(item_number: int) -> bool:
    """IR remote emulation items are set-only and the device never answers them."""
    return (item_number & 0xFF) not in IR_EMULATION_LOW_BYTES


def _check_word(name: str, value: int) -> int:
    if not 0 <= int(value) <= 0xFFFF:
        raise ValueError(f"{name} must fit in 16 bits, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class Response:
    item_number: int
    data: int
    is_reply: bool


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    response: Response | None = None
    error: Exception | None = None


@dataclass(eq=False)
class Command:
    item_number: int
    is_get: bool
    data: int = 0
    on_success: Callable[[Response | None], None] | None = None
    on_failure: Callable[[Exception], None] | None = None
    future: asyncio.Future | None = field(default=None, repr=False)
    _resolved: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.item_number = _check_word("item_number", self.item_number)
        self.data = _check_word("data", self.data)

    @classmethod
    def get(cls, item_number: int, **kwargs) -> "Command":
        return cls(item_number=item_number, is_get=True, data=0, **kwargs)

    @classmethod
    def set(cls, item_number: int, data: int = 0, **kwargs) -> "Command":
        return cls(item_number=item_number, is_get=False, data=data, **kwargs)

    @property
    def expects_reply(self) -> bool:
        return expects_reply(self.item_number)

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self, result: CommandResult) -> bool:
        """Complete the command once; later calls are ignored and return False.

        Callbacks run even if a caller cancelled the future it was waiting on.
        """
        if self._resolved:
            return False
        self._resolved = True
        if self.future is None:
            self.future = asyncio.get_running_loop().create_future()
        if not self.future.done():
            self.future.set_result(result)
        if result.ok:
            if self.on_success is not None:
                self.on_success(result.response)
        elif self.on_failure is not None:
            self.on_failure(result.error or CommandFailed("command failed"))
        return True


class CommandFailed(RuntimeError):
    """A command finished without a usable outcome."""


class LinkClosedError(CommandFailed):
    """The serial link went away while the command was in flight."""


@dataclass(frozen=True)
class SerialDevice:
    device: str
    description: str
    hwid: str
    vid: int | None
    pid: int | None
