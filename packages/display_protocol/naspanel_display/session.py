"""Session engine shared by every supported panel family.

One ``NasDisplay`` owns one serial channel. A background ``FrameReader``
feeds two queues: replies for the write pipeline and button frames for
``events()``/``listen()``. Writes are serialized by ``_io_lock``; state
transitions by ``_state_lock``. ``close()`` wakes blocked consumers before it
waits for the write lock. A channel lost on the reader thread is released
without the write lock; a writer that trips over it gets ``ClosedError``.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Iterator

from .buttons import make_interpreter
from .codec import encode, line_command
from .demux import CLOSED, FrameReader
from .errors import ClosedError, DeviceNotRespondingError, SizeMismatchError, TransportError
from .logs import PanelLogAdapter
from .models import ButtonEvent, ProtocolState, SessionTiming
from .profiles import ProtocolProfile
from .transport import DEFAULT_TTY, DisplayTransport

logger = logging.getLogger("naspanel.display")


class NasDisplay:
    """Two-line front-panel display driven over a serial port."""

    def __init__(
        self,
        profile: ProtocolProfile,
        port: str = DEFAULT_TTY,
        transport: DisplayTransport | None = None,
        timing: SessionTiming | None = None,
    ) -> None:
        self.profile = profile
        self.port = port or DEFAULT_TTY
        self.transport = transport or DisplayTransport()
        self.timing = timing or SessionTiming()
        self._state = ProtocolState.CLOSED
        self._state_lock = threading.Lock()
        self._io_lock = threading.Lock()
        self._last_flush = 0.0
        self._acks: queue.Queue = queue.Queue(maxsize=self.timing.queue_size)
        self._buttons: queue.Queue = queue.Queue(maxsize=self.timing.queue_size)
        self._reader: FrameReader | None = None
        self._interpreter = make_interpreter(profile)
        self._log = PanelLogAdapter(logger, profile.name, self.port)

    def __repr__(self) -> str:
        return f"NasDisplay(profile={self.profile.name!r}, port={self.port!r}, state={self._state.value})"

    def __enter__(self) -> "NasDisplay":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ProtocolState.OPEN

    def _is_closing(self) -> bool:
        return self._state in (ProtocolState.CLOSING, ProtocolState.CLOSED)

    # -- lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Open the channel, start the reader and probe the device.

        Raises:
            TransportError: The serial port could not be opened.
            DeviceNotRespondingError: No ready reply to the probe sequence.
            ClosedError: ``close()`` was called while probing, or a close
                is still in progress.
        """
        self._check_not_closing()
        with self._io_lock:
            with self._state_lock:
                self._check_not_closing()
                if self._state is not ProtocolState.CLOSED:
                    return
                self._state = ProtocolState.OPENING

            try:
                self.transport.open(
                    port=self.port,
                    baud=self.profile.baud,
                    timeout_ms=self.timing.read_poll_ms,
                )
                # a half-booted panel may have left bytes in the UART
                self.transport.flush_input()
            except TransportError:
                self._state = ProtocolState.CLOSED
                raise

            self._acks = queue.Queue(maxsize=self.timing.queue_size)
            self._buttons = queue.Queue(maxsize=self.timing.queue_size)
            self._interpreter.reset()
            self._last_flush = 0.0
            self._reader = FrameReader(
                self.transport,
                self.profile,
                self._acks,
                self._buttons,
                is_closing=self._is_closing,
                on_lost=self._connection_lost,
                port=self.port,
                poll_ms=self.timing.read_poll_ms,
                put_timeout_s=self.timing.queue_put_timeout_ms / 1000,
            )
            self._reader.start()

            try:
                self._establish()
            except Exception:
                with self._state_lock:
                    self._signal_closed()
                self._release()
                raise

            with self._state_lock:
                if self._state is not ProtocolState.OPENING:
                    self._release()
                    raise ClosedError()
                self._state = ProtocolState.OPEN
        self._log.info("%s display open on %s", self.profile.name, self.port, extra={"event": "display_open"})

    def _establish(self) -> None:
        if self._probe():
            return
        self._log.debug("first %s probe failed, retrying", self.profile.name, extra={"event": "probe_retry"})
        if self.profile.clear_display is not None:
            self._flush(self.profile.clear_display)
            self._await_reply((), self.timing.ack_timeout_ms)
        if self._probe():
            return
        raise DeviceNotRespondingError(f"no {self.profile.name} display answering on {self.port}")

    def _probe(self) -> bool:
        self._discard_replies()
        self._flush(self.profile.status_probe)
        return self._await_reply(self.profile.ready_replies, self.timing.probe_timeout_ms)

    def close(self) -> None:
        with self._state_lock:
            if self._state in (ProtocolState.CLOSED, ProtocolState.CLOSING):
                return
            self._signal_closed()
        with self._io_lock:
            self._release()
        self._log.info("%s display closed", self.profile.name, extra={"event": "display_closed"})

    def _force_close(self) -> None:
        with self._state_lock:
            if self._state is ProtocolState.CLOSED:
                return
            self._signal_closed()
        self._release()

    def _connection_lost(self, exc: Exception) -> None:
        self._log.warning("%s display lost: %s", self.profile.name, exc, extra={"event": "display_lost"})
        try:
            self._force_close()
        except TransportError as close_exc:
            self._log.warning("releasing lost %s display failed: %s", self.profile.name, close_exc)

    def _signal_closed(self) -> None:
        self._state = ProtocolState.CLOSING
        for q in (self._acks, self._buttons):
            try:
                q.put_nowait(CLOSED)
            except queue.Full:
                # nobody is blocked on a full queue; consumers re-check state
                pass

    def _release(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None:
            reader.stop()
        try:
            self.transport.close()
        finally:
            self._state = ProtocolState.CLOSED

    # -- write pipeline ------------------------------------------------------

    def write(self, line: int, text: str) -> None:
        """Show ``text`` on ``line``; it is cut or padded to 16 characters.

        Raises:
            ValueError: ``line`` is not a line of this display.
            ClosedError: The session is not open or closed while waiting.
            DeviceNotRespondingError: Every attempt went unacknowledged.
            SizeMismatchError: The transport accepted fewer bytes than sent.
            TransportError: The serial channel failed.
        """
        command = line_command(self.profile, line, text)
        with self._io_lock:
            self._ensure_open()
            self._discard_replies()
            attempts = max(1, self.timing.write_attempts)
            for attempt in range(1, attempts + 1):
                self._ensure_open()
                self._flush(command)
                if not self.profile.message_sent_replies:
                    return
                if self._await_reply(self.profile.message_sent_replies, self.timing.ack_timeout_ms, first_only=True):
                    return
                self._log.debug(
                    "write attempt %d/%d not acknowledged",
                    attempt,
                    attempts,
                    extra={"event": "write_retry", "line": int(line), "attempt": attempt},
                )
            self._log.warning(
                "%s display did not acknowledge %d writes",
                self.profile.name,
                attempts,
                extra={"event": "write_failed", "line": int(line)},
            )
            raise DeviceNotRespondingError()

    def enable(self, on: bool) -> None:
        """Switch the display on or off. Not acknowledged by either family."""
        with self._io_lock:
            self._ensure_open()
            self._flush(self.profile.display_on if on else self.profile.display_off)

    def _check_not_closing(self) -> None:
        if self._state is ProtocolState.CLOSING:
            raise ClosedError("display is closing")

    def _ensure_open(self) -> None:
        if self._state is not ProtocolState.OPEN:
            raise ClosedError()

    def _flush(self, command: bytes) -> None:
        data = encode(self.profile, command)
        self._wait_for_spacing()
        try:
            n = self.transport.write(data)
        except TransportError as exc:
            if self._is_closing():
                raise ClosedError() from exc
            self._force_close()
            raise
        finally:
            self._last_flush = time.monotonic()
        if n != len(data):
            raise SizeMismatchError(expected=len(data), written=n)

    def _wait_for_spacing(self) -> None:
        delta = self._last_flush + self.timing.write_spacing_ms / 1000 - time.monotonic()
        if delta > 0:
            time.sleep(delta)

    def _discard_replies(self) -> None:
        while True:
            try:
                item = self._acks.get_nowait()
            except queue.Empty:
                return
            if item is CLOSED:
                raise ClosedError()

    def _await_reply(self, expected: tuple[bytes, ...], timeout_ms: int, first_only: bool = False) -> bool:
        """Wait for a reply in ``expected``.

        With ``first_only`` the first reply decides; otherwise non-matching
        replies are skipped until the deadline.
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            try:
                item = self._acks.get(timeout=remaining)
            except queue.Empty:
                return False
            if item is CLOSED or self._is_closing():
                raise ClosedError()
            if item in expected:
                return True
            if first_only:
                return False

    # -- buttons -------------------------------------------------------------

    def events(self) -> Iterator[ButtonEvent]:
        """Yield button events until the session closes.

        Only one consumer per session is supported.
        """
        buttons = self._buttons
        while self.is_open:
            item = buttons.get()
            if item is CLOSED or not self.is_open:
                return
            event = self._interpreter.feed(item)
            if event is not None:
                yield event

    def listen(self, callback: Callable[[int, bool], bool]) -> None:
        """Block and call ``callback(button, released)`` for every event.

        Returning ``False`` from the callback stops listening. Returns at once
        when the session is closed.
        """
        for event in self.events():
            if not callback(event.button, event.released):
                return
