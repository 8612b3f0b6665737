"""Frame builder and parser for the panel serial protocols.

Outbound ASUSTOR commands carry a trailing checksum byte equal to the sum of
all preceding bytes modulo 256. Inbound frames are fixed length; their
checksum is reported but never used to reject a frame, the devices are known
to be sloppy about it.
"""

from __future__ import annotations

from .models import Frame
from .profiles import ProtocolProfile

LINE_WIDTH = 16


def checksum(data: bytes) -> int:
    return sum(data) & 0xFF


def encode(profile: ProtocolProfile, command: bytes) -> bytes:
    """Build the on-wire bytes for ``command``.

    Args:
        profile: Display family the command is meant for.
        command: Command bytes without checksum.

    Returns:
        ``command`` followed by its checksum for checksummed families,
        ``command`` unchanged otherwise.
    """
    if not command:
        raise ValueError("Command must not be empty")
    command = bytes(command)
    if not profile.checksummed:
        return command
    return command + bytes([checksum(command)])


def decode(profile: ProtocolProfile, raw: bytes) -> Frame | None:
    """Wrap ``raw`` into a ``Frame``, or ``None`` if its length is wrong."""
    if len(raw) != profile.frame_length:
        return None
    return Frame(raw=bytes(raw), checksummed=profile.checksummed)


def normalize_text(text: str | bytes) -> bytes:
    """Return exactly ``LINE_WIDTH`` bytes: truncated or right-padded with spaces."""
    if isinstance(text, str):
        text = text.encode("ascii", errors="replace")
    return bytes(text[:LINE_WIDTH]).ljust(LINE_WIDTH, b" ")


def line_command(profile: ProtocolProfile, line: int, text: str | bytes) -> bytes:
    if not 0 <= int(line) < profile.lines:
        raise ValueError(f"Line must be 0-{profile.lines - 1}, got {line}")
    return profile.line_prefix + bytes([int(line)]) + profile.line_infix + normalize_text(text)


def realign(raw: bytes, prefix: bytes) -> bytes:
    """Restore the byte order of a button frame shuffled by a read/write crossover.

    Frames that already start with ``prefix``, or that do not contain every
    prefix byte, are returned as is.
    """
    if raw.startswith(prefix):
        return raw
    rest = bytearray(raw)
    for b in prefix:
        try:
            rest.remove(b)
        except ValueError:
            return raw
    return prefix + bytes(rest)
