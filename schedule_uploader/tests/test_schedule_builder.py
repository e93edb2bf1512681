"""
Tests for the schedule builder: room extraction, normalisation,
fingerprint stability and change detection.
"""

from __future__ import annotations

import datetime as dt
import unittest

from schedule_uploader.models import RoomSchedule
from schedule_uploader.schedule_builder import (
    apply_schedule,
    build_event,
    build_events,
    build_schedule,
    compute_fingerprint,
    events_for_date,
    extract_room,
    sort_by_start,
)

from .test_common import SOURCE_A, TODAY, TODAY_STR, make_event, make_raw_event


class TestExtractRoom(unittest.TestCase):

    def test_leading_zero_stripped(self):
        self.assertEqual(extract_room("Room: 02"), "2")

    def test_single_zero_kept(self):
        self.assertEqual(extract_room("Room: 0"), "0")

    def test_all_zeros_collapse_to_single_zero(self):
        # "00" would be empty after plain zero-stripping; one digit is kept instead
        self.assertEqual(extract_room("Room: 00"), "0")

    def test_first_match_only(self):
        self.assertEqual(extract_room("Room: 3\nRoom: 5"), "3")

    def test_embedded_in_free_text(self):
        self.assertEqual(extract_room("Lecturer: Smith\nRoom: 104, Building B"), "104")

    def test_no_match(self):
        self.assertIsNone(extract_room("Lecturer: Smith"))
        self.assertIsNone(extract_room("Room: TBA"))
        self.assertIsNone(extract_room(""))
        self.assertIsNone(extract_room(None))


class TestBuildEvent(unittest.TestCase):

    def test_fields_are_zero_padded(self):
        raw = make_raw_event(uid="42", start=dt.datetime(2024, 3, 5, 8, 5),
                             end=dt.datetime(2024, 3, 5, 9, 0), room="04", summary="Statistics")
        event = build_event(raw)
        self.assertEqual(event.uid, "42")
        self.assertEqual(event.date, "05.03.2024")
        self.assertEqual(event.start, "08:05")
        self.assertEqual(event.end, "09:00")
        self.assertEqual(event.room, "4")
        self.assertEqual(event.description, "Statistics")

    def test_non_event_components_are_discarded(self):
        self.assertIsNone(build_event(make_raw_event(component="VTODO")))
        self.assertIsNone(build_event(make_raw_event(component="VTIMEZONE")))

    def test_event_without_room_is_discarded(self):
        self.assertIsNone(build_event(make_raw_event(room=None)))

    def test_event_without_start_is_discarded(self):
        raw = make_raw_event()
        raw["start"] = None
        self.assertIsNone(build_event(raw))

    def test_aware_timestamps_use_local_time(self):
        start = dt.datetime(2024, 3, 5, 7, 30, tzinfo=dt.timezone.utc)
        event = build_event(make_raw_event(start=start))
        local = start.astimezone()
        self.assertEqual(event.start, local.strftime("%H:%M"))
        self.assertEqual(event.date, local.strftime("%d.%m.%Y"))

    def test_all_day_entry_starts_at_midnight(self):
        raw = make_raw_event(start=dt.datetime(2024, 3, 5), end=dt.datetime(2024, 3, 6))
        raw["start"], raw["end"] = dt.date(2024, 3, 5), dt.date(2024, 3, 6)
        event = build_event(raw)
        self.assertEqual((event.date, event.start), ("05.03.2024", "00:00"))

    def test_build_events_keeps_feed_order(self):
        raws = [
            make_raw_event(uid="b", start=dt.datetime(2024, 3, 5, 10, 0)),
            make_raw_event(uid="x", room=None),
            make_raw_event(uid="a", start=dt.datetime(2024, 3, 5, 8, 0)),
        ]
        self.assertEqual([e.uid for e in build_events(raws)], ["b", "a"])


class TestSortAndFilter(unittest.TestCase):

    def test_sort_is_stable_for_equal_starts(self):
        events = [
            make_event(uid="late", start="09:00"),
            make_event(uid="first-0830", start="08:30"),
            make_event(uid="second-0830", start="08:30"),
        ]
        self.assertEqual(
            [e.uid for e in sort_by_start(events)],
            ["first-0830", "second-0830", "late"],
        )

    def test_events_for_date(self):
        events = [make_event(uid="today"), make_event(uid="tomorrow", date="06.03.2024")]
        self.assertEqual([e.uid for e in events_for_date(events, TODAY_STR)], ["today"])


class TestFingerprint(unittest.TestCase):

    def test_same_content_same_fingerprint(self):
        events = [make_event(uid="1"), make_event(uid="2", start="10:00")]
        self.assertEqual(compute_fingerprint(events), compute_fingerprint(list(events)))

    def test_independent_of_order(self):
        a, b = make_event(uid="1"), make_event(uid="2", start="10:00")
        self.assertEqual(compute_fingerprint([a, b]), compute_fingerprint([b, a]))

    def test_content_change_changes_fingerprint(self):
        before = [make_event(description="Statistics")]
        after = [make_event(description="Statistics II")]
        self.assertNotEqual(compute_fingerprint(before), compute_fingerprint(after))

    def test_fingerprint_only_covers_today(self):
        raws = [make_raw_event(uid="1")]
        with_future = raws + [make_raw_event(uid="2", start=dt.datetime(2024, 3, 6, 8, 0))]
        _, fp1 = build_schedule(raws, TODAY)
        _, fp2 = build_schedule(with_future, TODAY)
        self.assertEqual(fp1, fp2)


class TestApplySchedule(unittest.TestCase):

    def setUp(self) -> None:
        self.schedule = RoomSchedule(SOURCE_A)

    def test_first_build_is_a_change(self):
        self.assertTrue(apply_schedule(self.schedule, [make_raw_event()], TODAY))
        self.assertIsNotNone(self.schedule.fingerprint)
        self.assertEqual(self.schedule.date, TODAY_STR)

    def test_rebuild_of_unchanged_feed_is_not_a_change(self):
        raws = [make_raw_event(uid="1"), make_raw_event(uid="2", start=dt.datetime(2024, 3, 5, 12, 0))]
        apply_schedule(self.schedule, raws, TODAY)
        self.assertFalse(apply_schedule(self.schedule, raws, TODAY))
        self.assertFalse(apply_schedule(self.schedule, list(reversed(raws)), TODAY))

    def test_future_only_change_is_not_a_change(self):
        apply_schedule(self.schedule, [make_raw_event()], TODAY)
        raws = [make_raw_event(), make_raw_event(uid="next", start=dt.datetime(2024, 3, 7, 8, 0))]
        self.assertFalse(apply_schedule(self.schedule, raws, TODAY))
        # The full list is still replaced
        self.assertEqual(len(self.schedule.events), 2)

    def test_new_event_today_is_a_change(self):
        apply_schedule(self.schedule, [make_raw_event()], TODAY)
        old_fingerprint = self.schedule.fingerprint
        raws = [make_raw_event(), make_raw_event(uid="new", start=dt.datetime(2024, 3, 5, 14, 0))]
        self.assertTrue(apply_schedule(self.schedule, raws, TODAY))
        self.assertNotEqual(self.schedule.fingerprint, old_fingerprint)

    def test_events_are_replaced_not_merged(self):
        apply_schedule(self.schedule, [make_raw_event(uid="old")], TODAY)
        apply_schedule(self.schedule, [make_raw_event(uid="new")], TODAY)
        self.assertEqual([e.uid for e in self.schedule.events], ["new"])
