import tempfile
import unittest
from datetime import date, datetime, timezone
from pathlib import Path

from cruschedule.exceptions import InvalidQueryError
from cruschedule.export_ics import export_slots_to_ics, first_occurrence, slots_to_ics
from cruschedule.model import Day, Slot
from cruschedule.parse import parse_cru
from cruschedule.slotset import SlotSet

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

SAMPLE = (
    "+ME01\r\n"
    "1,D1,P=24,H=L 10:00-12:00,F1,S=S101//\r\n"
    "Page générée en 0.01s\r\n"
)


def make_slot(course: str, day: str, start: str, end: str, room: str = "S101", subgroup: str = "F1") -> Slot:
    return Slot(
        course_code=course,
        lesson_type="CM",
        capacity=30,
        day=day,
        start_time=start,
        end_time=end,
        room=room,
        subgroup=subgroup,
    )


class TestExportICS(unittest.TestCase):
    def test_parsed_session_exports_one_vevent(self) -> None:
        slots = parse_cru(SAMPLE).slots
        ics = slots_to_ics(
            slots,
            period_start=date(2025, 1, 6),
            period_end=date(2025, 1, 10),
            courses=["ME01"],
            uid_domain="example.test",
            now=NOW,
        )

        self.assertTrue(ics.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\n"))
        self.assertTrue(ics.endswith("END:VCALENDAR\r\n"))
        self.assertEqual(ics.count("BEGIN:VEVENT"), 1)
        self.assertIn("END:VEVENT", ics)
        self.assertIn("UID:cru-ME01-L-1000-0@example.test\r\n", ics)
        self.assertIn("DTSTAMP:20250101T120000Z\r\n", ics)
        self.assertIn("DTSTART:20250106T100000\r\n", ics)
        self.assertIn("DTEND:20250106T120000\r\n", ics)
        self.assertIn("SUMMARY:ME01 TD (F1)\r\n", ics)
        self.assertIn("LOCATION:S101\r\n", ics)
        self.assertIn("RRULE:FREQ=WEEKLY;UNTIL=20250110T235959;BYDAY=MO\r\n", ics)
        self.assertNotIn("\n", ics.replace("\r\n", ""))

    def test_course_filter_and_sorted_uids(self) -> None:
        slots = SlotSet(
            [
                make_slot("ME02", "V", "08:00", "10:00"),
                make_slot("ME01", "ME", "14:00", "16:00"),
                make_slot("LE03", "L", "08:00", "10:00"),
                make_slot("ME01", "L", "08:00", "10:00", room="S102"),
            ]
        )
        ics = slots_to_ics(slots, date(2025, 1, 6), date(2025, 1, 31), courses={"ME01", "ME02"}, now=NOW)

        uids = [line for line in ics.split("\r\n") if line.startswith("UID:")]
        self.assertEqual(
            uids,
            [
                "UID:cru-ME01-L-0800-0@example.com",
                "UID:cru-ME01-ME-1400-1@example.com",
                "UID:cru-ME02-V-0800-2@example.com",
            ],
        )
        self.assertNotIn("LE03", ics)
        self.assertIn("BYDAY=WE", ics)
        self.assertIn("BYDAY=FR", ics)
        # one DTSTAMP for the whole export
        stamps = {line for line in ics.split("\r\n") if line.startswith("DTSTAMP:")}
        self.assertEqual(stamps, {"DTSTAMP:20250101T120000Z"})

    def test_no_filter_keeps_everything(self) -> None:
        slots = SlotSet([make_slot("ME01", "L", "08:00", "10:00"), make_slot("LE03", "MA", "08:00", "10:00")])
        ics = slots_to_ics(slots, date(2025, 1, 6), date(2025, 1, 31), now=NOW)
        self.assertEqual(ics.count("BEGIN:VEVENT"), 2)

    def test_first_occurrence_wraps_week(self) -> None:
        # 2025-01-08 is a Wednesday
        self.assertEqual(first_occurrence(date(2025, 1, 8), Day.MON, "09:15"), datetime(2025, 1, 13, 9, 15))
        self.assertEqual(first_occurrence(date(2025, 1, 8), Day.WED, "09:15"), datetime(2025, 1, 8, 9, 15))
        self.assertEqual(first_occurrence(date(2025, 1, 8), Day.FRI, "09:15"), datetime(2025, 1, 10, 9, 15))

    def test_period_too_short_emits_no_event(self) -> None:
        slots = SlotSet([make_slot("ME01", "L", "08:00", "10:00"), make_slot("ME01", "ME", "08:00", "10:00")])
        # Tuesday to Thursday: no Monday in the period
        ics = slots_to_ics(slots, date(2025, 1, 7), date(2025, 1, 9), now=NOW)
        self.assertEqual(ics.count("BEGIN:VEVENT"), 1)
        self.assertIn("DTSTART:20250108T080000", ics)

    def test_empty_collection_is_valid_calendar(self) -> None:
        ics = slots_to_ics(SlotSet.empty(), date(2025, 1, 6), date(2025, 1, 10), now=NOW)
        self.assertIn("BEGIN:VCALENDAR", ics)
        self.assertIn("END:VCALENDAR", ics)
        self.assertNotIn("BEGIN:VEVENT", ics)

    def test_text_fields_are_escaped(self) -> None:
        slots = SlotSet([make_slot("A,B;C\\D", "L", "08:00", "10:00", subgroup="")])
        ics = slots_to_ics(slots, date(2025, 1, 6), date(2025, 1, 10), now=NOW)
        self.assertIn("SUMMARY:A\\,B\\;C\\\\D CM\r\n", ics)

    def test_line_breaks_and_location_are_escaped(self) -> None:
        slots = SlotSet([make_slot("ME\n01", "L", "08:00", "10:00", room="S1,2", subgroup="F\r\n1")])
        ics = slots_to_ics(slots, date(2025, 1, 6), date(2025, 1, 10), now=NOW)
        self.assertIn("SUMMARY:ME\\n01 CM (F\\n1)\r\n", ics)
        self.assertIn("LOCATION:S1\\,2\r\n", ics)
        self.assertNotIn("\n", ics.replace("\r\n", ""))

    def test_uid_is_escaped(self) -> None:
        slots = SlotSet([make_slot("ME01, part;2", "L", "10:00", "12:00")])
        ics = slots_to_ics(slots, date(2025, 1, 6), date(2025, 1, 10), now=NOW)
        self.assertIn("UID:cru-ME01\\, part\\;2-L-1000-0@example.com\r\n", ics)

    def test_end_before_start_is_rejected(self) -> None:
        with self.assertRaises(InvalidQueryError):
            slots_to_ics(SlotSet.empty(), date(2025, 1, 10), date(2025, 1, 6))

    def test_export_creates_file_and_counts_events(self) -> None:
        slots = parse_cru(SAMPLE).slots
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "sub" / "out.ics"
            n = export_slots_to_ics(slots, out, date(2025, 1, 6), date(2025, 1, 10))
            self.assertEqual(n, 1)
            raw = out.read_bytes()
            self.assertIn(b"BEGIN:VCALENDAR\r\n", raw)
            self.assertIn(b"SUMMARY:ME01 TD (F1)\r\n", raw)


if __name__ == "__main__":
    unittest.main()
