"""Fixed 8-byte frame encoder/decoder.

Frame layout::

    +-------+-----------+------+-----------+----------+-----+
    | start | item      | type | data      | checksum | end |
    | 0xA9  | 2 bytes BE| 1 B  | 2 bytes BE| 1 byte   | 0x9A|
    +-------+-----------+------+-----------+----------+-----+

Type codes: 0x01 get request, 0x00 set request, 0x02 reply,
0x03 notification. The checksum is the bitwise OR of bytes 1-5.
"""

from __future__ import annotations

import logging

from .models import Response


FRAME_SIZE = 8
START_CODE = 0xA9
END_CODE = 0x9A

TYPE_SET = 0x00
TYPE_GET = 0x01
TYPE_REPLY = 0x02
TYPE_NOTIFY = 0x03

logger = logging.getLogger("pjcontrol.link.frame")


class FrameError(ValueError):
    """Inbound bytes are not a valid frame."""


def compute_checksum(frame: bytes | bytearray | list[int]) -> int:
    return (frame[1] | frame[2] | frame[3] | frame[4] | frame[5]) & 0xFF


def hex_bytes(data: bytes) -> str:
    return " ".join(f"{b:02X}" for b in data)


def encode_frame(item_number: int, is_get: bool, data: int = 0) -> bytes:
    if not 0 <= item_number <= 0xFFFF:
        raise ValueError(f"item number out of range: {item_number!r}")
    if not 0 <= data <= 0xFFFF:
        raise ValueError(f"data word out of range: {data!r}")
    buf = bytearray(FRAME_SIZE)
    buf[0] = START_CODE
    buf[1] = (item_number >> 8) & 0xFF
    buf[2] = item_number & 0xFF
    buf[3] = TYPE_GET if is_get else TYPE_SET
    buf[4] = (data >> 8) & 0xFF
    buf[5] = data & 0xFF
    buf[6] = compute_checksum(buf)
    buf[7] = END_CODE
    return bytes(buf)


def encode_reply(item_number: int, data: int = 0, notification: bool = False) -> bytes:
    """Build a device-to-host frame, as the projector would send it."""
    buf = bytearray(encode_frame(item_number, True, data))
    buf[3] = TYPE_NOTIFY if notification else TYPE_REPLY
    buf[6] = compute_checksum(buf)
    return bytes(buf)


def decode_frame(data: bytes) -> Response:
    if len(data) != FRAME_SIZE:
        raise FrameError(f"incorrect packet length {len(data)}")
    if data[0] != START_CODE:
        raise FrameError("missing start code")
    if data[7] != END_CODE:
        raise FrameError("missing end code")
    if data[3] not in (TYPE_REPLY, TYPE_NOTIFY):
        raise FrameError(f"unknown type code 0x{data[3]:02X}")
    if data[6] != compute_checksum(data):
        raise FrameError("checksum mismatch")
    return Response(
        item_number=(data[1] << 8) | data[2],
        data=(data[4] << 8) | data[5],
        is_reply=data[3] == TYPE_REPLY,
    )


def parse_response(data: bytes) -> Response | None:
    """Decode an inbound chunk, logging and returning None when it is not a frame."""
    try:
        response = decode_frame(data)
    except FrameError as exc:
        logger.error(
            "Invalid response, %s",
            exc,
            extra={"event": "frame_invalid", "frame_hex": bytes(data).hex()},
        )
        return None
    logger.debug(
        "Got response, item=0x%04X, data=0x%04X, is_reply=%s",
        response.item_number,
        response.data,
        response.is_reply,
    )
    return response
