"""Serial link package for projectors speaking the fixed 8-byte frame protocol."""

from .dispatcher import CommandQueue
from .frame import FrameError, compute_checksum, decode_frame, encode_frame, encode_reply, parse_response
from .models import (
    Command,
    CommandFailed,
    CommandResult,
    ItemNumber,
    LinkClosedError,
    LinkState,
    PowerStatus,
    Response,
    SerialDevice,
    expects_reply,
)
from .replay import ReplayEvent, ReplayReport, ReplayRunner
from .transport import LinkSession, SerialConfig

__all__ = [
    "Command",
    "CommandFailed",
    "CommandQueue",
    "CommandResult",
    "FrameError",
    "ItemNumber",
    "LinkClosedError",
    "LinkSession",
    "LinkState",
    "PowerStatus",
    "ReplayEvent",
    "ReplayReport",
    "ReplayRunner",
    "Response",
    "SerialConfig",
    "SerialDevice",
    "compute_checksum",
    "decode_frame",
    "encode_frame",
    "encode_reply",
    "expects_reply",
    "parse_response",
]
