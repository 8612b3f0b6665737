"""Per-family wire constants for the two supported front-panel displays.

ASUSTOR frame layout::

    MESSAGE_TYPE DATA_LENGTH COMMAND [DATA ...] CHECKSUM

QNAP commands are raw byte strings without a checksum; its replies and button
reports are 4-byte frames starting with ``0x53``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReadStrategy(str, Enum):
    SCAN = "scan"
    FIXED = "fixed"


class ButtonMode(str, Enum):
    COMBINED = "combined"
    STATEFUL = "stateful"


@dataclass(frozen=True)
class ProtocolProfile:
    name: str
    baud: int
    frame_length: int
    command_byte: int
    reply_byte: int
    checksummed: bool
    status_probe: bytes
    clear_display: bytes | None
    display_on: bytes
    display_off: bytes
    line_prefix: bytes
    line_infix: bytes
    button_prefix: bytes
    ready_replies: tuple[bytes, ...]
    message_sent_replies: tuple[bytes, ...]
    read_strategy: ReadStrategy
    button_mode: ButtonMode
    realign_buttons: bool = False
    lines: int = 2
    line_width: int = 16

    @property
    def markers(self) -> tuple[int, int]:
        return (self.command_byte, self.reply_byte)

    def is_button_frame(self, raw: bytes) -> bool:
        return raw.startswith(self.button_prefix)


_ASUS_CMD = 0xF0
_ASUS_REPLY = 0xF1

ASUSTOR = ProtocolProfile(
    name="asustor",
    baud=115200,
    frame_length=5,
    command_byte=_ASUS_CMD,
    reply_byte=_ASUS_REPLY,
    checksummed=True,
    status_probe=bytes([_ASUS_CMD, 0x01, 0x11, 0x01]),
    clear_display=bytes([_ASUS_CMD, 0x01, 0x12, 0x01]),
    display_on=bytes([_ASUS_CMD, 0x01, 0x22, 0x00]),
    display_off=bytes([_ASUS_CMD, 0x01, 0x11, 0x00]),
    line_prefix=bytes([_ASUS_CMD, 0x12, 0x27]),
    line_infix=bytes([0x00]),
    button_prefix=bytes([_ASUS_CMD, 0x01, 0x80]),
    ready_replies=(
        bytes([_ASUS_REPLY, 0x01, 0x11, 0x00, 0x03]),
        bytes([_ASUS_REPLY, 0x01, 0x11, 0x04, 0x07]),
        bytes([_ASUS_REPLY, 0x01, 0x27, 0x04, 0x1D]),
    ),
    message_sent_replies=(bytes([_ASUS_REPLY, 0x01, 0x27, 0x00, 0x19]),),
    read_strategy=ReadStrategy.SCAN,
    button_mode=ButtonMode.COMBINED,
)

_QNAP_CMD = 0x4D
_QNAP_REPLY = 0x53

QNAP = ProtocolProfile(
    name="qnap",
    baud=1200,
    frame_length=4,
    command_byte=_QNAP_CMD,
    reply_byte=_QNAP_REPLY,
    checksummed=False,
    status_probe=bytes([_QNAP_CMD, 0x00]),
    clear_display=None,
    display_on=bytes([_QNAP_CMD, 0x5E, 0x01, 0x0A]),
    display_off=bytes([_QNAP_CMD, 0x5E, 0x00, 0x0A]),
    # backlight on, then "write line" with a 16 byte payload
    line_prefix=bytes([_QNAP_CMD, 0x5E, 0x01, _QNAP_CMD, 0x0C]),
    line_infix=bytes([0x10]),
    button_prefix=bytes([_QNAP_REPLY, 0x05, 0x00]),
    ready_replies=(bytes([_QNAP_REPLY, 0x01, 0x00, 0x7D]),),
    message_sent_replies=(),
    read_strategy=ReadStrategy.FIXED,
    button_mode=ButtonMode.STATEFUL,
    realign_buttons=True,
)

PROFILES: dict[str, ProtocolProfile] = {p.name: p for p in (ASUSTOR, QNAP)}


def get_profile(name: str) -> ProtocolProfile:
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown display family '{name}'. Valid: {list(PROFILES)}") from None
