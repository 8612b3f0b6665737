"""Probing factory that returns whichever panel answers on the UART."""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from .errors import DisplayError
from .models import ButtonEvent, SessionTiming
from .profiles import ASUSTOR, QNAP, ProtocolProfile
from .session import NasDisplay
from .transport import DEFAULT_TTY, DisplayTransport

logger = logging.getLogger("naspanel.display")

PROBE_ORDER: tuple[ProtocolProfile, ...] = (ASUSTOR, QNAP)


class DummyDisplay:
    """Stand-in used when no panel is present; every operation is a no-op."""

    profile = None
    port = None
    is_open = False

    def open(self) -> None:
        pass

    def write(self, line: int, text: str) -> None:
        pass

    def enable(self, on: bool) -> None:
        pass

    def events(self) -> Iterator[ButtonEvent]:
        return iter(())

    def listen(self, callback: Callable[[int, bool], bool]) -> None:
        pass

    def close(self) -> None:
        pass


def find_display(
    port: str = DEFAULT_TTY,
    timing: SessionTiming | None = None,
    transport_factory: Callable[[], DisplayTransport] = DisplayTransport,
) -> NasDisplay | DummyDisplay:
    """Open the first family in ``PROBE_ORDER`` that answers its handshake."""
    last_error: DisplayError | None = None
    for profile in PROBE_ORDER:
        display = NasDisplay(profile, port=port, transport=transport_factory(), timing=timing)
        try:
            display.open()
        except DisplayError as exc:
            logger.debug(
                "%s probe on %s failed: %s",
                profile.name,
                port,
                exc,
                extra={"event": "probe_failed", "profile": profile.name, "port": port},
            )
            last_error = exc
            continue
        logger.info("Using %s LCD", profile.name, extra={"event": "display_found", "profile": profile.name, "port": port})
        return display
    logger.warning(
        "no panel display found on %s: %s",
        port,
        last_error,
        extra={"event": "display_missing", "port": port},
    )
    return DummyDisplay()
