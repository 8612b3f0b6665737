"""Background reader that splits the inbound byte stream into frames.

Frames that start with the profile's button prefix go to the button queue,
everything else is treated as a reply and goes to the ack queue.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

from .codec import decode, realign
from .errors import TransportError
from .logs import PanelLogAdapter
from .profiles import ProtocolProfile, ReadStrategy

logger = logging.getLogger("naspanel.display.demux")

# Pushed on a queue to wake its consumer when the session closes.
CLOSED = object()


class ScanAssembler:
    """Resynchronizes on the command/reply marker bytes.

    Bytes are dropped until a marker is seen, then exactly ``frame_length``
    bytes are collected, whatever their value.
    """

    def __init__(self, profile: ProtocolProfile) -> None:
        self.profile = profile
        self._buf = bytearray()

    def reset(self) -> None:
        self._buf.clear()

    def feed(self, chunk: bytes) -> list[bytes]:
        frames: list[bytes] = []
        markers = self.profile.markers
        for b in chunk:
            if not self._buf and b not in markers:
                continue
            self._buf.append(b)
            if len(self._buf) == self.profile.frame_length:
                frames.append(bytes(self._buf))
                self._buf.clear()
        return frames


class FixedWindowAssembler:
    """Cuts the stream into consecutive ``frame_length`` windows."""

    def __init__(self, profile: ProtocolProfile) -> None:
        self.profile = profile
        self._buf = bytearray()

    def reset(self) -> None:
        self._buf.clear()

    def feed(self, chunk: bytes) -> list[bytes]:
        self._buf.extend(chunk)
        size = self.profile.frame_length
        frames: list[bytes] = []
        while len(self._buf) >= size:
            raw = bytes(self._buf[:size])
            del self._buf[:size]
            if self.profile.realign_buttons:
                raw = realign(raw, self.profile.button_prefix)
            frames.append(raw)
        return frames


def make_assembler(profile: ProtocolProfile) -> ScanAssembler | FixedWindowAssembler:
    if profile.read_strategy is ReadStrategy.FIXED:
        return FixedWindowAssembler(profile)
    return ScanAssembler(profile)


class FrameReader:
    """Reads the transport on a daemon thread and routes decoded frames.

    A full ack queue blocks the reader for at most ``put_timeout_s`` before
    the frame is dropped; a full button queue drops its oldest entry.

    Inbound checksums are not enforced. Mismatches are counted in
    ``checksum_errors``; the first one per reader is logged as a warning and
    the rest at debug level.
    """

    def __init__(
        self,
        transport,
        profile: ProtocolProfile,
        acks: queue.Queue,
        buttons: queue.Queue,
        is_closing: Callable[[], bool],
        on_lost: Callable[[Exception], None] | None = None,
        port: str | None = None,
        poll_ms: int = 100,
        put_timeout_s: float = 0.5,
    ) -> None:
        self.transport = transport
        self.profile = profile
        self.acks = acks
        self.buttons = buttons
        self._is_closing = is_closing
        self._on_lost = on_lost
        self._poll_ms = poll_ms
        self._put_timeout_s = put_timeout_s
        self._assembler = make_assembler(profile)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._log = PanelLogAdapter(logger, profile.name, port)
        self.checksum_errors = 0

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> None:
        self._stop.clear()
        self._assembler.reset()
        self._thread = threading.Thread(target=self.run, name=f"naspanel-{self.profile.name}-reader", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def run(self) -> None:
        read_size = self.profile.frame_length
        while not self._stop.is_set():
            try:
                chunk = self.transport.read(read_size, timeout_ms=self._poll_ms)
            except TransportError as exc:
                if self._stop.is_set():
                    return
                self._log.warning("panel read failed: %s", exc, extra={"event": "read_error"})
                if self._on_lost is not None:
                    self._on_lost(exc)
                return
            if not chunk or self._stop.is_set():
                continue
            for raw in self._assembler.feed(chunk):
                self.dispatch(raw)

    def dispatch(self, raw: bytes) -> None:
        frame = decode(self.profile, raw)
        if frame is None:
            return
        if not frame.checksum_ok:
            self.checksum_errors += 1
            level = logging.WARNING if self.checksum_errors == 1 else logging.DEBUG
            self._log.log(
                level,
                "checksum mismatch on %r, frame kept",
                frame,
                extra={"event": "checksum_mismatch", "frame": frame.raw.hex()},
            )
        if self.profile.is_button_frame(frame.raw):
            if self._is_closing():
                return
            self._push_button(frame.raw)
        else:
            try:
                self.acks.put(frame.raw, timeout=self._put_timeout_s)
            except queue.Full:
                self._log.warning("ack queue full, dropping %r", frame, extra={"event": "ack_dropped"})

    def _push_button(self, raw: bytes) -> None:
        while True:
            try:
                self.buttons.put_nowait(raw)
                return
            except queue.Full:
                try:
                    self.buttons.get_nowait()
                except queue.Empty:
                    pass
                self._log.debug("button queue full, dropped oldest event", extra={"event": "button_dropped"})
