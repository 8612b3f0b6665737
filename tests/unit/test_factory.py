import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "display_protocol"))

from naspanel_display.factory import DummyDisplay, find_display
from naspanel_display.models import SessionTiming
from naspanel_display.profiles import ASUSTOR, QNAP
from naspanel_display.session import NasDisplay

from fake_panel import FakePanel

FAST = SessionTiming(probe_timeout_ms=60, ack_timeout_ms=20, read_poll_ms=10)


class FindDisplayTests(unittest.TestCase):
    def test_asustor_preferred(self):
        fake = FakePanel(ASUSTOR)
        display = find_display(port="/dev/ttyS1", timing=FAST, transport_factory=lambda: fake)
        self.addCleanup(display.close)
        self.assertIsInstance(display, NasDisplay)
        self.assertIs(display.profile, ASUSTOR)
        self.assertEqual(fake.opened, [("/dev/ttyS1", 115200)])

    def test_falls_back_to_qnap(self):
        fake = FakePanel(QNAP)
        display = find_display(port="/dev/ttyS1", timing=FAST, transport_factory=lambda: fake)
        self.addCleanup(display.close)
        self.assertIs(display.profile, QNAP)
        self.assertEqual([baud for _, baud in fake.opened], [115200, 1200])

    def test_dummy_when_nothing_answers(self):
        fake = FakePanel(QNAP, ready=False)
        display = find_display(timing=FAST, transport_factory=lambda: fake)
        self.assertIsInstance(display, DummyDisplay)
        self.assertFalse(fake.is_open)
        display.write(0, "ignored")
        display.enable(True)
        self.assertEqual(list(display.events()), [])
        display.close()


if __name__ == "__main__":
    unittest.main()
