"""Typed models for display sessions and their events."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class ProtocolState(str, Enum):
    CLOSED = "Closed"
    OPENING = "Opening"
    OPEN = "Open"
    CLOSING = "Closing"


class Line(IntEnum):
    ONE = 0
    TWO = 1


BUTTON_NONE = 0
BUTTON_UP = 1
BUTTON_DOWN = 2
BUTTON_BOTH = 3


@dataclass(frozen=True)
class SerialDevice:
    device: str
    description: str
    hwid: str
    vid: int | None
    pid: int | None


@dataclass(frozen=True)
class ButtonEvent:
    button: int
    released: bool


@dataclass(frozen=True)
class Frame:
    """One fixed-length inbound frame."""

    raw: bytes
    checksummed: bool = True

    @property
    def data(self) -> bytes:
        return self.raw[:-1] if self.checksummed else self.raw

    @property
    def checksum(self) -> int | None:
        return self.raw[-1] if self.checksummed and self.raw else None

    @property
    def checksum_ok(self) -> bool:
        if not self.checksummed:
            return True
        return bool(self.raw) and sum(self.raw[:-1]) & 0xFF == self.raw[-1]

    def __repr__(self) -> str:
        return f"Frame(raw={self.raw.hex(' ') if self.raw else '(empty)'})"


@dataclass(frozen=True)
class SessionTiming:
    probe_timeout_ms: int = 300
    ack_timeout_ms: int = 40
    write_spacing_ms: int = 10
    write_attempts: int = 10
    queue_size: int = 100
    read_poll_ms: int = 100
    queue_put_timeout_ms: int = 500
