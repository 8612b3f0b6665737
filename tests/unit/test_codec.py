import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "display_protocol"))

from naspanel_display.codec import checksum, decode, encode, line_command, normalize_text, realign
from naspanel_display.profiles import ASUSTOR, QNAP, get_profile
from naspanel_display.text import prepare_text, progress


class ChecksumTests(unittest.TestCase):
    def test_encode_appends_sum_mod_256(self):
        for command in (b"\xf0\x01\x11\x01", b"\xff\xff\xff", bytes(range(40))):
            wire = encode(ASUSTOR, command)
            self.assertEqual(wire[:-1], command)
            self.assertEqual(wire[-1], sum(command) % 256)

    def test_status_probe_vector(self):
        self.assertEqual(encode(ASUSTOR, ASUSTOR.status_probe), bytes.fromhex("F001110103"))

    def test_known_replies_carry_valid_checksums(self):
        for reply in ASUSTOR.ready_replies + ASUSTOR.message_sent_replies:
            self.assertEqual(checksum(reply[:-1]), reply[-1])

    def test_qnap_commands_are_sent_verbatim(self):
        self.assertEqual(encode(QNAP, QNAP.status_probe), b"\x4d\x00")

    def test_empty_command_rejected(self):
        with self.assertRaises(ValueError):
            encode(ASUSTOR, b"")


class DecodeTests(unittest.TestCase):
    def test_decode_recovers_command(self):
        command = bytes([0xF1, 0x01, 0x27, 0x00])
        frame = decode(ASUSTOR, encode(ASUSTOR, command))
        self.assertEqual(frame.data, command)
        self.assertTrue(frame.checksum_ok)

    def test_wrong_length_is_invalid(self):
        self.assertIsNone(decode(ASUSTOR, b"\xf1\x01\x27\x00"))
        self.assertIsNone(decode(QNAP, b"\x53\x05\x00\x01\x00"))

    def test_bad_checksum_is_reported_not_rejected(self):
        frame = decode(ASUSTOR, b"\xf1\x01\x27\x00\x00")
        self.assertIsNotNone(frame)
        self.assertFalse(frame.checksum_ok)

    def test_qnap_frames_have_no_checksum(self):
        frame = decode(QNAP, b"\x53\x01\x00\x7d")
        self.assertIsNone(frame.checksum)
        self.assertEqual(frame.data, b"\x53\x01\x00\x7d")


class TextTests(unittest.TestCase):
    def test_normalize_pads_and_truncates(self):
        self.assertEqual(normalize_text("Hello"), b"Hello" + b" " * 11)
        self.assertEqual(normalize_text("x" * 40), b"x" * 16)
        self.assertEqual(len(normalize_text("")), 16)

    def test_normalize_is_idempotent(self):
        once = normalize_text("Volume 1: 87% used")
        self.assertEqual(normalize_text(once), once)

    def test_non_ascii_is_replaced(self):
        self.assertEqual(normalize_text("café"), b"caf?" + b" " * 12)

    def test_prepare_text(self):
        self.assertEqual(prepare_text("abc"), "abc" + " " * 13)
        self.assertEqual(prepare_text("0123456789abcdefXYZ"), "0123456789abcdef")

    def test_progress_bar(self):
        self.assertEqual(progress(0), "-" * 16)
        self.assertEqual(progress(50), "\n" * 8 + "-" * 8)
        self.assertEqual(progress(100), "\n" * 16)
        self.assertEqual(progress(250), "\n" * 16)


class LineCommandTests(unittest.TestCase):
    def test_asustor_hello_frame(self):
        wire = encode(ASUSTOR, line_command(ASUSTOR, 0, "Hello"))
        self.assertEqual(len(wire), 22)
        self.assertEqual(wire[:5], bytes.fromhex("F012270000"))
        self.assertEqual(wire[5:21], b"Hello           ")
        self.assertEqual(wire[-1], 0x7D)

    def test_qnap_line_frame(self):
        wire = encode(QNAP, line_command(QNAP, 1, "Hi"))
        self.assertEqual(wire[:7], bytes.fromhex("4D5E014D0C0110"))
        self.assertEqual(len(wire), 23)

    def test_line_out_of_range(self):
        with self.assertRaises(ValueError):
            line_command(ASUSTOR, 2, "x")
        with self.assertRaises(ValueError):
            line_command(QNAP, -1, "x")


class RealignTests(unittest.TestCase):
    def test_shuffled_button_frame_restored(self):
        self.assertEqual(realign(b"\x05\x53\x00\x02", QNAP.button_prefix), b"\x53\x05\x00\x02")

    def test_other_frames_untouched(self):
        self.assertEqual(realign(b"\x53\x01\x00\x7d", QNAP.button_prefix), b"\x53\x01\x00\x7d")
        self.assertEqual(realign(b"\x53\x05\x00\x01", QNAP.button_prefix), b"\x53\x05\x00\x01")


class ProfileTests(unittest.TestCase):
    def test_lookup(self):
        self.assertIs(get_profile("ASUSTOR"), ASUSTOR)
        self.assertIs(get_profile("qnap"), QNAP)
        with self.assertRaises(ValueError):
            get_profile("synology")

    def test_profiles_are_immutable(self):
        with self.assertRaises(AttributeError):
            ASUSTOR.baud = 9600


if __name__ == "__main__":
    unittest.main()
