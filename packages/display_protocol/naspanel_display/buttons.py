"""Decoding of raw button frames into press/release events."""

from __future__ import annotations

from .models import BUTTON_BOTH, BUTTON_DOWN, BUTTON_NONE, BUTTON_UP, ButtonEvent
from .profiles import ButtonMode, ProtocolProfile


class CombinedButtonInterpreter:
    """One frame per physical event; byte 3 carries the button id."""

    def __init__(self, profile: ProtocolProfile) -> None:
        self.profile = profile

    def reset(self) -> None:
        pass

    def feed(self, raw: bytes) -> ButtonEvent | None:
        if not self.profile.is_button_frame(raw) or len(raw) <= len(self.profile.button_prefix):
            return None
        return ButtonEvent(button=raw[len(self.profile.button_prefix)], released=True)


class StatefulButtonInterpreter:
    """Separate press and release frames; the release does not name the button.

    The last pressed id is attached to the following release. Once both
    buttons are reported held, single up/down reports are contact bounce and
    are suppressed until the release arrives.
    """

    def __init__(self, profile: ProtocolProfile) -> None:
        self.profile = profile
        self.last_button = BUTTON_NONE
        prefix = profile.button_prefix
        self._states = {
            prefix + bytes([BUTTON_NONE]): BUTTON_NONE,
            prefix + bytes([BUTTON_UP]): BUTTON_UP,
            prefix + bytes([BUTTON_DOWN]): BUTTON_DOWN,
            prefix + bytes([BUTTON_BOTH]): BUTTON_BOTH,
        }

    def reset(self) -> None:
        self.last_button = BUTTON_NONE

    def feed(self, raw: bytes) -> ButtonEvent | None:
        state = self._states.get(bytes(raw))
        if state is None:
            return None
        if state == BUTTON_NONE:
            event = ButtonEvent(button=self.last_button, released=True)
            self.last_button = BUTTON_NONE
            return event
        if self.last_button == BUTTON_BOTH and state != BUTTON_BOTH:
            return None
        self.last_button = state
        return ButtonEvent(button=state, released=False)


def make_interpreter(profile: ProtocolProfile) -> CombinedButtonInterpreter | StatefulButtonInterpreter:
    if profile.button_mode is ButtonMode.STATEFUL:
        return StatefulButtonInterpreter(profile)
    return CombinedButtonInterpreter(profile)
