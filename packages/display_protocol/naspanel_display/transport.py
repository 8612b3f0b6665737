"""Serial transport abstraction for the front-panel display UART."""

from __future__ import annotations

from typing import Any

import serial
from serial.tools import list_ports

from .errors import TransportError
from .models import SerialDevice

DEFAULT_TTY = "/dev/ttyS1"


class DisplayTransport:
    """Thin wrapper over pyserial with 8N1 settings for the panel UART."""

    def __init__(self) -> None:
        self._serial: Any | None = None

    @property
    def is_open(self) -> bool:
        return bool(self._serial and self._serial.is_open)

    def open(self, port: str, baud: int = 115200, rtscts: bool = False, timeout_ms: int = 100) -> None:
        if self.is_open:
            return
        try:
            self._serial = serial.Serial(
                port=port,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=max(timeout_ms, 1) / 1000,
                write_timeout=max(timeout_ms, 1) / 1000,
                rtscts=rtscts,
            )
        except (serial.SerialException, OSError) as exc:
            raise TransportError(f"Failed to open {port}: {exc}") from exc

    def close(self) -> None:
        port, self._serial = self._serial, None
        if port is not None:
            try:
                port.close()
            except (serial.SerialException, OSError) as exc:
                raise TransportError(str(exc)) from exc

    def _port(self) -> Any:
        port = self._serial
        if port is None or not port.is_open:
            raise TransportError("Serial port is not open")
        return port

    def write(self, payload: bytes) -> int:
        port = self._port()
        try:
            return int(port.write(payload) or 0)
        except (serial.SerialException, OSError) as exc:
            raise TransportError(str(exc)) from exc

    def read(self, max_len: int, timeout_ms: int | None = None) -> bytes:
        port = self._port()
        try:
            if timeout_ms is not None:
                port.timeout = max(timeout_ms, 1) / 1000
            return bytes(port.read(max_len))
        except (serial.SerialException, OSError, TypeError) as exc:
            # TypeError: pyserial reading from a descriptor closed by another thread
            raise TransportError(str(exc)) from exc

    def flush_input(self) -> None:
        """Drop whatever the UART buffered before the session started."""
        port = self._port()
        try:
            port.reset_input_buffer()
        except (serial.SerialException, OSError) as exc:
            raise TransportError(str(exc)) from exc

    @staticmethod
    def discover() -> list[SerialDevice]:
        devices: list[SerialDevice] = []
        for item in list_ports.comports():
            devices.append(
                SerialDevice(
                    device=item.device,
                    description=item.description,
                    hwid=item.hwid,
                    vid=item.vid,
                    pid=item.pid,
                )
            )
        return devices
