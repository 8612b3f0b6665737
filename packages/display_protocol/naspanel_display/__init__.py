"""Serial protocol engine for two-line NAS front-panel displays."""

from .errors import ClosedError, DeviceNotRespondingError, DisplayError, SizeMismatchError, TransportError
from .factory import DummyDisplay, find_display
from .logs import PANEL_FIELDS, PanelLogAdapter
from .models import ButtonEvent, Frame, Line, ProtocolState, SerialDevice, SessionTiming
from .profiles import ASUSTOR, PROFILES, QNAP, ProtocolProfile, get_profile
from .replay import ReplayEvent, ReplayReport, ReplayRunner
from .session import NasDisplay
from .text import prepare_text, progress
from .transport import DEFAULT_TTY, DisplayTransport

__all__ = [
    "ASUSTOR",
    "ButtonEvent",
    "ClosedError",
    "DEFAULT_TTY",
    "DeviceNotRespondingError",
    "DisplayError",
    "DisplayTransport",
    "DummyDisplay",
    "Frame",
    "Line",
    "NasDisplay",
    "PANEL_FIELDS",
    "PROFILES",
    "PanelLogAdapter",
    "ProtocolProfile",
    "ProtocolState",
    "QNAP",
    "ReplayEvent",
    "ReplayReport",
    "ReplayRunner",
    "SerialDevice",
    "SessionTiming",
    "SizeMismatchError",
    "TransportError",
    "find_display",
    "get_profile",
    "prepare_text",
    "progress",
]
