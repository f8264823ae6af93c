from types import SimpleNamespace
import unittest
from unittest.mock import MagicMock

from gradetrackr.ui.views.course_view import score_change_handler


def _event(value):
    return SimpleNamespace(control=SimpleNamespace(value=value))


class ScoreChangeHandlerTests(unittest.TestCase):
    def setUp(self):
        self.scores = {"mid_semester": None}
        self.on_changed = MagicMock()
        self.handler = score_change_handler(self.scores, "mid_semester", 15, self.on_changed)

    def type_into(self, event, value):
        event.control.value = value
        self.handler(event)

    def test_decimal_entry_is_not_rewritten(self):
        event = _event("")
        for keystroke in ("7", "7.", "7.5"):
            self.type_into(event, keystroke)
            self.assertEqual(event.control.value, keystroke)
        self.assertEqual(self.scores["mid_semester"], 7.5)
        self.assertEqual(self.on_changed.call_count, 3)

    def test_trailing_zero_entry_is_kept(self):
        event = _event("")
        for keystroke in ("7", "7.", "7.0"):
            self.type_into(event, keystroke)
        self.assertEqual(event.control.value, "7.0")
        self.assertEqual(self.scores["mid_semester"], 7)

    def test_out_of_range_entry_is_rewritten(self):
        event = _event("")
        self.type_into(event, "7")
        self.type_into(event, "75")
        self.assertEqual(event.control.value, "15")
        self.assertEqual(self.scores["mid_semester"], 15)

        self.type_into(event, "-2")
        self.assertEqual(event.control.value, "0")
        self.assertEqual(self.scores["mid_semester"], 0)

    def test_blank_or_text_entry_unsets_score(self):
        event = _event("12")
        self.handler(event)
        self.type_into(event, "")
        self.assertIsNone(self.scores["mid_semester"])
        self.assertEqual(event.control.value, "")

        self.type_into(event, "abc")
        self.assertIsNone(self.scores["mid_semester"])
        self.assertEqual(event.control.value, "abc")


if __name__ == "__main__":
    unittest.main()
