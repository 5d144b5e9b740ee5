import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "link"))

from pjcontrol_link.models import Command, ItemNumber, LinkState, PowerStatus, expects_reply


class PowerStatusTests(unittest.TestCase):
    def test_known_values(self):
        self.assertIs(PowerStatus.from_value(0), PowerStatus.STANDBY)
        self.assertIs(PowerStatus.from_value(3), PowerStatus.POWER_ON)
        self.assertIs(PowerStatus.from_value(8), PowerStatus.SAVING_STANDBY)
        self.assertEqual(PowerStatus.STARTUP_LAMP.label, "StartupLamp")

    def test_unrecognized_values_map_to_unknown(self):
        for value in (9, 0x42, 0xFFFF, -7):
            self.assertIs(PowerStatus.from_value(value), PowerStatus.UNKNOWN)
        self.assertEqual(PowerStatus.UNKNOWN.label, "Unknown")


class CommandTests(unittest.TestCase):
    def test_ir_emulation_items_expect_no_reply(self):
        for item in (0x1017, 0x0019, 0xAB1B):
            self.assertFalse(expects_reply(item))
        for item in (ItemNumber.POWER_STATUS, ItemNumber.POWER_ON, ItemNumber.POWER_OFF):
            self.assertTrue(expects_reply(item))

    def test_constructors(self):
        get = Command.get(ItemNumber.POWER_STATUS)
        self.assertTrue(get.is_get)
        self.assertEqual(get.data, 0)
        put = Command.set(0x1017, 0x0001)
        self.assertFalse(put.is_get)
        self.assertFalse(put.expects_reply)

    def test_rejects_out_of_range_words(self):
        with self.assertRaises(ValueError):
            Command.get(0x1_0000)
        with self.assertRaises(ValueError):
            Command.set(0x0102, data=-1)

    def test_link_state_values(self):
        self.assertEqual(LinkState.AWAITING_REPLY.value, "AwaitingReply")
        self.assertEqual(LinkState.CLOSED.value, "Closed")


if __name__ == "__main__":
    unittest.main()
