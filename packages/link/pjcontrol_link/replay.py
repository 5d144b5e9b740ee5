"""Replay/analysis utilities for captured serial transcripts."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from .frame import FrameError, decode_frame
from .models import ItemNumber


_HEX_CLEAN = re.compile(r"[^0-9a-fA-F]")


@dataclass(frozen=True)
class ReplayEvent:
    line: int
    direction: str
    payload: bytes


@dataclass
class ReplayReport:
    total_events: int = 0
    host_to_device_events: int = 0
    device_to_host_events: int = 0
    replies: int = 0
    notifications: int = 0
    raw_bytes_total: int = 0
    item_counts: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def _item_name(item_number: int) -> str:
    try:
        return ItemNumber(item_number).name
    except ValueError:
        return f"0x{item_number:04X}"


class ReplayRunner:
    @staticmethod
    def _decode_hex(value: str) -> bytes:
        cleaned = _HEX_CLEAN.sub("", value)
        if len(cleaned) % 2 == 1:
            cleaned = cleaned[:-1]
        if not cleaned:
            return b""
        return bytes.fromhex(cleaned)

    def _parse_line(self, line_no: int, line: str) -> ReplayEvent | None:
        stripped = line.strip()
        if not stripped:
            return None
        obj = json.loads(stripped)
        direction = obj.get("dir") or obj.get("direction") or "unknown"
        hex_value = obj.get("payload_hex") or obj.get("hex") or ""
        return ReplayEvent(line=line_no, direction=direction, payload=self._decode_hex(str(hex_value)))

    def parse(self, transcript_path: Path) -> list[ReplayEvent]:
        events: list[ReplayEvent] = []
        for idx, line in enumerate(transcript_path.read_text(encoding="utf-8").splitlines(), start=1):
            event = self._parse_line(idx, line)
            if event is not None:
                events.append(event)
        return events

    def run(self, transcript_path: Path) -> ReplayReport:
        events = self.parse(transcript_path)
        report = ReplayReport(total_events=len(events))

        for event in events:
            payload = event.payload
            report.raw_bytes_total += len(payload)

            if event.direction == "host_to_device":
                report.host_to_device_events += 1
                # Outbound frames carry request type codes, so only the layout is checked.
                if len(payload) != 8 or payload[0] != 0xA9 or payload[7] != 0x9A:
                    report.errors.append(f"line {event.line}: malformed request")
                    continue
                name = _item_name((payload[1] << 8) | payload[2])
                report.item_counts[name] = report.item_counts.get(name, 0) + 1
                continue

            if event.direction == "device_to_host":
                report.device_to_host_events += 1
            try:
                response = decode_frame(payload)
            except FrameError as exc:
                report.errors.append(f"line {event.line}: {exc}")
                continue
            if response.is_reply:
                report.replies += 1
            else:
                report.notifications += 1

        return report
