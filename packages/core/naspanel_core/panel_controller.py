"""Panel controller with status lines, progress bars, and reconnect handling."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from naspanel_display import (
    ClosedError,
    DeviceNotRespondingError,
    DisplayError,
    DummyDisplay,
    Line,
    NasDisplay,
    ProtocolState,
    SessionTiming,
    TransportError,
    find_display,
    get_profile,
    progress,
)

from .config import AppConfig

logger = logging.getLogger("naspanel.controller")


@dataclass
class PanelStatus:
    connected: bool = False
    port: str | None = None
    variant: str | None = None
    state: ProtocolState = ProtocolState.CLOSED
    writes: int = 0
    last_error: str | None = None
    recovery_attempts: int = 0


class PanelController:
    def __init__(
        self,
        port: str | None = None,
        variant: str = "auto",
        timing: SessionTiming | None = None,
        max_recover_attempts: int = 3,
        backoff_base: float = 0.25,
        backoff_cap: float = 4.0,
        display_factory: Callable[[str, str, SessionTiming | None], NasDisplay | DummyDisplay] | None = None,
    ) -> None:
        self.port = port
        self.variant = variant
        self.timing = timing

        self._display: NasDisplay | DummyDisplay | None = None
        self._display_factory = display_factory or _default_display
        self._status = PanelStatus()
        self._lock = threading.RLock()
        self._lines: dict[int, str] = {}
        self._events: list[dict[str, Any]] = []

        self._max_recover_attempts = max_recover_attempts
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap

    @classmethod
    def from_config(cls, cfg: AppConfig, port: str | None = None, variant: str | None = None) -> "PanelController":
        return cls(
            port=port or cfg.device.port,
            variant=variant or cfg.device.variant,
            timing=cfg.timing.to_session_timing(),
            max_recover_attempts=cfg.controller.max_recover_attempts,
            backoff_base=cfg.controller.backoff_base_s,
            backoff_cap=cfg.controller.backoff_cap_s,
        )

    @property
    def status(self) -> PanelStatus:
        display = self._display
        if isinstance(display, NasDisplay):
            self._status.state = display.state
        return self._status

    @property
    def display(self) -> NasDisplay | DummyDisplay | None:
        return self._display

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self._status.state.value,
        }
        row.update(fields)
        self._events.append(row)
        if len(self._events) > 1000:
            self._events = self._events[-1000:]

    def connect(self) -> str:
        """Open the panel and return the name of the family in use.

        Returns the current family without reopening when already connected.
        """
        with self._lock:
            if self._status.connected and self._display is not None:
                return self._display.profile.name
            self._status.state = ProtocolState.OPENING
            self._log_event("connect_start", port=self.port, variant=self.variant)

            try:
                display = self._display_factory(self.port, self.variant, self.timing)
            except DisplayError as exc:
                self._status.state = ProtocolState.CLOSED
                self._status.last_error = str(exc)
                self._log_event("connect_error", error=str(exc))
                raise

            if isinstance(display, DummyDisplay):
                self._status.state = ProtocolState.CLOSED
                self._log_event("connect_missing", port=self.port)
                raise DeviceNotRespondingError(f"no panel display found on {self.port}")

            self._display = display
            self._status.connected = True
            self._status.port = display.port
            self._status.variant = display.profile.name
            self._status.state = ProtocolState.OPEN
            self._status.last_error = None
            self._log_event("connect_ok", port=display.port, variant=display.profile.name)
            return display.profile.name

    def disconnect(self) -> None:
        with self._lock:
            display, self._display = self._display, None
            self._status.connected = False
            self._status.state = ProtocolState.CLOSED
            self._log_event("disconnect")
            if display is not None:
                display.close()

    def show(self, line: int, text: str) -> None:
        with self._lock:
            line = Line(line)
            self._apply(lambda d: d.write(line, text), "write", line=int(line))
            self._lines[int(line)] = text

    def show_lines(self, first: str, second: str = "") -> None:
        self.show(Line.ONE, first)
        self.show(Line.TWO, second)

    def show_progress(self, percent: int, line: int = Line.TWO) -> None:
        self.show(line, progress(percent))

    def set_enabled(self, on: bool) -> None:
        with self._lock:
            self._apply(lambda d: d.enable(on), "enable", on=on)

    def listen(self, callback: Callable[[int, bool], bool]) -> None:
        display = self._display
        if display is None:
            return
        self._log_event("listen_start")
        display.listen(callback)
        self._log_event("listen_stop")

    def _apply(self, op: Callable[[NasDisplay | DummyDisplay], None], name: str, **fields: Any) -> None:
        if not self._status.connected:
            self.connect()
        try:
            op(self._display)
        except (ClosedError, DeviceNotRespondingError, TransportError) as exc:
            self._status.last_error = str(exc)
            self._log_event(f"{name}_error", error=str(exc), **fields)
            logger.warning(
                "panel %s failed: %s",
                name,
                exc,
                extra={"event": f"{name}_error", "profile": self._status.variant, "port": self.port},
            )
            self._recover_with_backoff()
            op(self._display)
        self._status.writes += 1
        self._status.recovery_attempts = 0
        self._log_event(f"{name}_ok", **fields)

    def _recover_with_backoff(self) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self._max_recover_attempts + 1):
            delay = min(self._backoff_cap, self._backoff_base * (2 ** (attempt - 1)))
            wait_for = delay + random.uniform(0.0, 0.15)

            self._status.recovery_attempts = attempt
            self._log_event("recover_wait", attempt=attempt, wait_s=wait_for)
            time.sleep(wait_for)

            try:
                self.disconnect()
                self.connect()
                self._restore_lines()
                self._log_event("recover_ok", attempt=attempt)
                return
            except DisplayError as exc:
                last_error = exc
                self._status.last_error = str(exc)
                self._log_event("recover_error", attempt=attempt, error=str(exc))

        self._status.connected = False
        raise DeviceNotRespondingError(
            f"recover failed after {self._max_recover_attempts} attempts: {last_error}"
        )

    def _restore_lines(self) -> None:
        for line, text in sorted(self._lines.items()):
            self._display.write(line, text)


def _default_display(port: str | None, variant: str, timing: SessionTiming | None) -> NasDisplay | DummyDisplay:
    if variant == "auto":
        return find_display(port=port, timing=timing)
    display = NasDisplay(get_profile(variant), port=port, timing=timing)
    display.open()
    return display
