import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "link"))

from pjcontrol_link.frame import (
    FrameError,
    compute_checksum,
    decode_frame,
    encode_frame,
    encode_reply,
    hex_bytes,
    parse_response,
)


class FrameCodecTests(unittest.TestCase):
    def test_power_status_request_vector(self):
        frame = encode_frame(0x0102, True)
        self.assertEqual(frame, bytes.fromhex("A9 01 02 01 00 00 03 9A"))

    def test_checksum_is_or_of_body(self):
        frame = [0xA9, 0x01, 0x02, 0x01, 0x00, 0x00, 0x00, 0x9A]
        self.assertEqual(compute_checksum(frame), 0x03)

    def test_set_request_layout(self):
        frame = encode_frame(0x172E, False, 0x1234)
        self.assertEqual(frame[0], 0xA9)
        self.assertEqual(frame[1:3], b"\x17\x2E")
        self.assertEqual(frame[3], 0x00)
        self.assertEqual(frame[4:6], b"\x12\x34")
        self.assertEqual(frame[6], (0x17 | 0x2E | 0x00 | 0x12 | 0x34) & 0xFF)
        self.assertEqual(frame[7], 0x9A)

    def test_reply_round_trip(self):
        for item, data in ((0x0102, 0x0003), (0xFFFF, 0xFFFF), (0x0000, 0x0000), (0x172F, 0x00A5)):
            response = decode_frame(encode_reply(item, data))
            self.assertEqual(response.item_number, item)
            self.assertEqual(response.data, data)
            self.assertTrue(response.is_reply)

    def test_notification_decodes_as_not_reply(self):
        response = decode_frame(encode_reply(0x0102, 0x0000, notification=True))
        self.assertFalse(response.is_reply)

    def test_rejects_wrong_length(self):
        good = encode_reply(0x0102, 3)
        for bad in (good[:7], good + b"\x00", b""):
            with self.assertRaisesRegex(FrameError, "length"):
                decode_frame(bad)

    def test_rejects_start_and_end_codes(self):
        frame = bytearray(encode_reply(0x0102, 3))
        frame[0] = 0x00
        with self.assertRaisesRegex(FrameError, "start code"):
            decode_frame(bytes(frame))
        frame = bytearray(encode_reply(0x0102, 3))
        frame[7] = 0x00
        with self.assertRaisesRegex(FrameError, "end code"):
            decode_frame(bytes(frame))

    def test_rejects_request_type_codes(self):
        with self.assertRaisesRegex(FrameError, "type code"):
            decode_frame(encode_frame(0x0102, True))

    def test_rejects_checksum_mismatch(self):
        frame = bytearray(encode_reply(0x0102, 3))
        frame[6] ^= 0xFF
        with self.assertRaisesRegex(FrameError, "checksum"):
            decode_frame(bytes(frame))

    def test_weak_checksum_accepts_or_collisions(self):
        # 0x01|0x02 == 0x03|0x00, so altering the data word this way is undetectable.
        frame = bytearray(encode_reply(0x0000, 0x0102))
        frame[4], frame[5] = 0x03, 0x00
        self.assertEqual(decode_frame(bytes(frame)).data, 0x0300)

    def test_parse_response_reports_instead_of_raising(self):
        with self.assertLogs("pjcontrol.link.frame", level="ERROR") as captured:
            self.assertIsNone(parse_response(b"\x00" * 8))
        self.assertIn("missing start code", captured.output[0])

    def test_encode_range_checks(self):
        with self.assertRaises(ValueError):
            encode_frame(0x10000, True)
        with self.assertRaises(ValueError):
            encode_frame(0x0102, False, -1)

    def test_hex_bytes(self):
        self.assertEqual(hex_bytes(b"\xa9\x01\x9a"), "A9 01 9A")


if __name__ == "__main__":
    unittest.main()
