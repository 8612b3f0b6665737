import sys
import time
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "display_protocol"))

from naspanel_core.panel_controller import PanelController
from naspanel_display import ASUSTOR, DeviceNotRespondingError, DummyDisplay, NasDisplay, ProtocolState, SessionTiming

from fake_panel import FakePanel

FAST = SessionTiming(probe_timeout_ms=60, ack_timeout_ms=20, write_attempts=2, read_poll_ms=10)


class FakeFactory:
    def __init__(self, fake, heal_on_call=None, vanish_on_call=None):
        self.fake = fake
        self.calls = 0
        self.heal_on_call = heal_on_call
        self.vanish_on_call = vanish_on_call

    def __call__(self, port, variant, timing):
        self.calls += 1
        if self.calls == self.heal_on_call:
            self.fake.ack_writes = True
        if self.calls == self.vanish_on_call:
            self.fake.ready = False
        display = NasDisplay(ASUSTOR, port=port, transport=self.fake, timing=timing)
        display.open()
        return display


class PanelControllerTests(unittest.TestCase):
    def make(self, factory, attempts=2):
        controller = PanelController(
            port="/dev/ttyS1",
            timing=FAST,
            max_recover_attempts=attempts,
            backoff_base=0.0,
            backoff_cap=0.0,
            display_factory=factory,
        )
        self.addCleanup(controller.disconnect)
        return controller

    def test_show_connects_lazily(self):
        fake = FakePanel(ASUSTOR)
        controller = self.make(FakeFactory(fake))
        controller.show_lines("NAS ready", "2 disks")
        status = controller.status
        self.assertTrue(status.connected)
        self.assertEqual(status.variant, "asustor")
        self.assertEqual(status.state, ProtocolState.OPEN)
        self.assertEqual(status.writes, 2)
        self.assertEqual([w[5:21] for w in fake.line_writes()], [b"NAS ready       ", b"2 disks         "])

    def test_connect_when_connected_reuses_display(self):
        fake = FakePanel(ASUSTOR)
        factory = FakeFactory(fake)
        controller = self.make(factory)
        first = controller.connect()
        display = controller.display
        self.assertEqual(controller.connect(), first)
        self.assertIs(controller.display, display)
        self.assertEqual(factory.calls, 1)
        self.assertEqual(len(fake.opened), 1)

    def test_progress_goes_to_second_line(self):
        fake = FakePanel(ASUSTOR)
        controller = self.make(FakeFactory(fake))
        controller.show_progress(50)
        frame = fake.line_writes()[0]
        self.assertEqual(frame[3], 1)
        self.assertEqual(frame[5:21], b"\n" * 8 + b"-" * 8)

    def test_recovers_by_reopening(self):
        fake = FakePanel(ASUSTOR, ack_writes=False)
        factory = FakeFactory(fake, heal_on_call=2)
        controller = self.make(factory)
        controller.show(0, "rebuild 10%")
        self.assertEqual(factory.calls, 2)
        events = [e["event"] for e in controller.recent_events()]
        self.assertIn("write_error", events)
        self.assertIn("recover_ok", events)
        self.assertEqual(controller.status.recovery_attempts, 0)

    def test_recovers_after_reader_loss(self):
        fake = FakePanel(ASUSTOR)
        factory = FakeFactory(fake)
        controller = self.make(factory)
        controller.show(0, "before")
        fake.fail_reads = True
        deadline = time.monotonic() + 1
        while controller.display.state is not ProtocolState.CLOSED and time.monotonic() < deadline:
            time.sleep(0.01)
        fake.fail_reads = False
        controller.show(1, "after")
        self.assertEqual(factory.calls, 2)
        texts = [w[5:21].rstrip() for w in fake.line_writes()]
        self.assertEqual(texts, [b"before", b"before", b"after"])

    def test_gives_up_after_bounded_attempts(self):
        fake = FakePanel(ASUSTOR, ack_writes=False)
        factory = FakeFactory(fake, vanish_on_call=2)
        controller = self.make(factory, attempts=2)
        with self.assertRaises(DeviceNotRespondingError):
            controller.show(0, "x")
        self.assertEqual(factory.calls, 3)
        self.assertFalse(controller.status.connected)
        events = [e["event"] for e in controller.recent_events()]
        self.assertEqual(events.count("recover_error"), 2)

    def test_missing_panel(self):
        controller = self.make(lambda port, variant, timing: DummyDisplay())
        with self.assertRaises(DeviceNotRespondingError):
            controller.connect()
        self.assertEqual(controller.status.state, ProtocolState.CLOSED)

    def test_disconnect_closes_display(self):
        fake = FakePanel(ASUSTOR)
        controller = self.make(FakeFactory(fake))
        controller.set_enabled(False)
        controller.disconnect()
        self.assertFalse(fake.is_open)
        self.assertEqual(fake.writes[-1][:-1], ASUSTOR.display_off)


if __name__ == "__main__":
    unittest.main()
