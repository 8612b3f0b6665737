"""Replay/analysis utilities for captured panel serial transcripts."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

from .codec import checksum, decode
from .demux import make_assembler
from .profiles import ASUSTOR, ProtocolProfile


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
    probe_count: int = 0
    line_writes: int = 0
    enable_count: int = 0
    ready_replies: int = 0
    acks: int = 0
    button_frames: int = 0
    checksum_errors: int = 0
    raw_bytes_total: int = 0
    command_counts: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


class ReplayRunner:
    def __init__(self, profile: ProtocolProfile = ASUSTOR) -> None:
        self.profile = profile

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

    @staticmethod
    def _count(report: ReplayReport, name: str) -> None:
        report.command_counts[name] = report.command_counts.get(name, 0) + 1

    def _host_command(self, report: ReplayReport, payload: bytes) -> None:
        profile = self.profile
        command = payload
        if profile.checksummed:
            command = payload[:-1]
            if checksum(command) != payload[-1]:
                report.checksum_errors += 1
        if command == profile.status_probe:
            report.probe_count += 1
            self._count(report, "STATUS_PROBE")
        elif command == profile.clear_display:
            self._count(report, "CLEAR_DISPLAY")
        elif command in (profile.display_on, profile.display_off):
            report.enable_count += 1
            self._count(report, "DISPLAY_ON" if command == profile.display_on else "DISPLAY_OFF")
        elif command.startswith(profile.line_prefix):
            report.line_writes += 1
            self._count(report, "WRITE_LINE")
        else:
            self._count(report, "UNKNOWN")

    def _device_frame(self, report: ReplayReport, raw: bytes) -> None:
        frame = decode(self.profile, raw)
        if frame is None:
            return
        if not frame.checksum_ok:
            report.checksum_errors += 1
        if self.profile.is_button_frame(frame.raw):
            report.button_frames += 1
        elif frame.raw in self.profile.ready_replies:
            report.ready_replies += 1
        elif frame.raw in self.profile.message_sent_replies:
            report.acks += 1
        else:
            self._count(report, "UNKNOWN_REPLY")

    def run(self, transcript_path: Path, strict: bool = True) -> ReplayReport:
        events = self.parse(transcript_path)
        report = ReplayReport(total_events=len(events))
        assembler = make_assembler(self.profile)

        for event in events:
            payload = event.payload
            report.raw_bytes_total += len(payload)
            if event.direction == "host_to_device":
                report.host_to_device_events += 1
                if payload:
                    self._host_command(report, payload)
            elif event.direction == "device_to_host":
                report.device_to_host_events += 1
                for raw in assembler.feed(payload):
                    self._device_frame(report, raw)

        if strict:
            if report.probe_count < 1:
                report.errors.append("missing_probe")
            if report.ready_replies < 1:
                report.errors.append("missing_ready")

        return report
