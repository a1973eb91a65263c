# Almanac
# Copyright (C) 2024-2026 The Almanac contributors
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; version 3
# of the License or (at your option) any later version of
# the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston,
# MA  02110-1301, USA.

"""Tests for almanac.expand."""

import unittest
from datetime import date, datetime, timedelta, timezone

from almanac.config import EngineSettings
from almanac.events import Event
from almanac.expand import (
    expand_event,
    expand_events,
    occurrence_id,
    rruleset_from_event,
)
from almanac.rrule import ByDay, RecurrenceRule


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def make_event(start, end, recurrence=None, id="ev1", **kwargs):
    return Event(id, "Swimming", start, end, recurrence=recurrence, **kwargs)


class OccurrenceIdTests(unittest.TestCase):
    def test_utc(self):
        self.assertEqual(
            "ev1_20240115T093000Z", occurrence_id("ev1", utc(2024, 1, 15, 9, 30))
        )

    def test_floating(self):
        self.assertEqual(
            "ev1_20240115T093000", occurrence_id("ev1", datetime(2024, 1, 15, 9, 30))
        )

    def test_date(self):
        self.assertEqual("ev1_20240115T000000", occurrence_id("ev1", date(2024, 1, 15)))


class RRuleSetFromEventTests(unittest.TestCase):
    def test_not_recurring(self):
        event = make_event(utc(2024, 1, 1, 9), utc(2024, 1, 1, 10))
        self.assertIsNone(rruleset_from_event(event))

    def test_interval_clamped(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", interval=0, count=3),
        )
        with self.assertLogs("almanac.expand", level="WARNING"):
            rs = rruleset_from_event(event)
        self.assertEqual(
            [utc(2024, 1, 1, 9), utc(2024, 1, 2, 9), utc(2024, 1, 3, 9)], list(rs)
        )


class ExpandNonRecurringTests(unittest.TestCase):
    def setUp(self):
        self.event = make_event(utc(2024, 1, 15, 10), utc(2024, 1, 15, 11))

    def test_in_range(self):
        occurrences = expand_event(self.event, utc(2024, 1, 15), utc(2024, 1, 16))
        self.assertEqual(1, len(occurrences))
        occurrence = occurrences[0]
        self.assertEqual("ev1", occurrence.id)
        self.assertEqual(utc(2024, 1, 15, 10), occurrence.start)
        self.assertEqual(utc(2024, 1, 15, 11), occurrence.end)
        self.assertFalse(occurrence.is_recurrence_instance)
        self.assertIsNone(occurrence.master_event_id)
        self.assertIs(self.event, occurrence.event)

    def test_out_of_range(self):
        self.assertEqual(
            [], expand_event(self.event, utc(2024, 1, 16), utc(2024, 1, 17))
        )

    def test_touching_range(self):
        self.assertEqual(
            [], expand_event(self.event, utc(2024, 1, 15, 11), utc(2024, 1, 15, 12))
        )
        self.assertEqual(
            [], expand_event(self.event, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        )

    def test_partial_overlap(self):
        self.assertEqual(
            1,
            len(expand_event(self.event, utc(2024, 1, 15, 10, 30), utc(2024, 1, 16))),
        )


class ExpandRecurringTests(unittest.TestCase):
    def test_daily(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily")
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2024, 1, 8))
        self.assertEqual(7, len(occurrences))
        for i, occurrence in enumerate(occurrences):
            self.assertEqual(utc(2024, 1, 1 + i, 9), occurrence.start)
            self.assertEqual(timedelta(hours=1), occurrence.end - occurrence.start)
            self.assertTrue(occurrence.is_recurrence_instance)
            self.assertEqual("ev1", occurrence.master_event_id)

    def test_ids_unique(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily")
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2024, 3, 1))
        ids = [occurrence.id for occurrence in occurrences]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual("ev1_20240101T090000Z", ids[0])

    def test_count(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("weekly", count=5)
        )
        occurrences = expand_event(event, utc(2000, 1, 1), utc(2100, 1, 1))
        self.assertEqual(5, len(occurrences))
        self.assertEqual(utc(2024, 1, 29, 9), occurrences[-1].start)

    def test_until_datetime(self):
        until = utc(2024, 1, 5, 9)
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily", until=until)
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(5, len(occurrences))
        for occurrence in occurrences:
            self.assertLessEqual(occurrence.start, until)

    def test_until_date_covers_day(self):
        event = make_event(
            utc(2024, 1, 1, 18),
            utc(2024, 1, 1, 19),
            RecurrenceRule("daily", until=date(2024, 1, 10)),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(10, len(occurrences))
        self.assertEqual(utc(2024, 1, 10, 18), occurrences[-1].start)

    def test_count_and_until(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", count=10, until=utc(2024, 1, 3, 9)),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(3, len(occurrences))

    def test_interval(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", interval=3),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2024, 1, 10))
        self.assertEqual(
            [utc(2024, 1, 1, 9), utc(2024, 1, 4, 9), utc(2024, 1, 7, 9)],
            [occurrence.start for occurrence in occurrences],
        )

    def test_weekly_byday(self):
        # 2024-01-01 is a Monday.
        event = make_event(
            utc(2024, 1, 1, 17),
            utc(2024, 1, 1, 18),
            RecurrenceRule("weekly", by_day=[ByDay("MO"), ByDay("WE"), ByDay("FR")]),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2024, 1, 8))
        self.assertEqual(
            [utc(2024, 1, 1, 17), utc(2024, 1, 3, 17), utc(2024, 1, 5, 17)],
            [occurrence.start for occurrence in occurrences],
        )

    def test_monthly_last_friday(self):
        event = make_event(
            utc(2024, 1, 26, 10),
            utc(2024, 1, 26, 11),
            RecurrenceRule("monthly", count=3, by_day=[ByDay("FR", -1)]),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(
            [utc(2024, 1, 26, 10), utc(2024, 2, 23, 10), utc(2024, 3, 29, 10)],
            [occurrence.start for occurrence in occurrences],
        )

    def test_monthly_skips_short_months(self):
        event = make_event(
            utc(2024, 1, 31, 10),
            utc(2024, 1, 31, 11),
            RecurrenceRule("monthly", count=3),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(
            [utc(2024, 1, 31, 10), utc(2024, 3, 31, 10), utc(2024, 5, 31, 10)],
            [occurrence.start for occurrence in occurrences],
        )

    def test_exdate_consumes_count(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", count=3, exdates=[date(2024, 1, 2)]),
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2025, 1, 1))
        self.assertEqual(
            [utc(2024, 1, 1, 9), utc(2024, 1, 3, 9)],
            [occurrence.start for occurrence in occurrences],
        )

    def test_rule_matching_nothing(self):
        # February never has a 30th.
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", by_month=[2], by_month_day=[30]),
        )
        self.assertEqual([], list(rruleset_from_event(event, utc(2024, 1, 8))))
        self.assertEqual([], expand_event(event, utc(2024, 1, 1), utc(2024, 1, 8)))

    def test_range_end_bounds_rruleset(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily", until=utc(2024, 1, 20, 9)),
        )
        self.assertEqual(
            [utc(2024, 1, 1, 9), utc(2024, 1, 2, 9), utc(2024, 1, 3, 9)],
            list(rruleset_from_event(event, utc(2024, 1, 3, 9))),
        )
        self.assertEqual(
            20, len(list(rruleset_from_event(event, utc(2024, 2, 1))))
        )

    def test_settings_max_instances(self):
        settings = EngineSettings()
        settings.set_max_instances(3)
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily")
        )
        occurrences = expand_event(
            event, utc(2024, 1, 1), utc(2024, 2, 1), settings=settings
        )
        self.assertEqual(3, len(occurrences))
        occurrences = expand_event(
            event, utc(2024, 1, 1), utc(2024, 2, 1), max_instances=5, settings=settings
        )
        self.assertEqual(5, len(occurrences))

    def test_exdates(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule(
                "daily", exdates=[date(2024, 1, 3), utc(2024, 1, 5, 9)]
            ),
        )
        starts = [
            occurrence.start
            for occurrence in expand_event(event, utc(2024, 1, 1), utc(2024, 1, 8))
        ]
        self.assertEqual(5, len(starts))
        self.assertNotIn(utc(2024, 1, 3, 9), starts)
        self.assertNotIn(utc(2024, 1, 5, 9), starts)

    def test_rdates(self):
        event = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("weekly", count=2, rdates=[utc(2024, 1, 4, 9)]),
        )
        starts = [
            occurrence.start
            for occurrence in expand_event(event, utc(2024, 1, 1), utc(2024, 2, 1))
        ]
        self.assertEqual(
            [utc(2024, 1, 1, 9), utc(2024, 1, 4, 9), utc(2024, 1, 8, 9)], starts
        )

    def test_occurrence_started_before_range(self):
        event = make_event(
            utc(2024, 1, 1, 23), utc(2024, 1, 2, 1), RecurrenceRule("daily")
        )
        occurrences = expand_event(event, utc(2024, 1, 3), utc(2024, 1, 3, 12))
        self.assertEqual([utc(2024, 1, 2, 23)], [o.start for o in occurrences])

    def test_max_instances(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily")
        )
        with self.assertLogs("almanac.expand", level="DEBUG"):
            occurrences = expand_event(
                event, utc(2024, 1, 1), utc(2100, 1, 1), max_instances=10
            )
        self.assertEqual(10, len(occurrences))

    def test_range_before_start(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("daily")
        )
        self.assertEqual([], expand_event(event, utc(2023, 1, 1), utc(2023, 12, 31)))

    def test_floating_times(self):
        event = make_event(
            datetime(2024, 1, 1, 9),
            datetime(2024, 1, 1, 10),
            RecurrenceRule("weekly", count=4),
        )
        occurrences = expand_event(event, datetime(2024, 1, 1), datetime(2024, 2, 1))
        self.assertEqual(4, len(occurrences))
        self.assertIsNone(occurrences[0].start.tzinfo)
        self.assertEqual("ev1_20240108T090000", occurrences[1].id)

    def test_all_day_yearly(self):
        event = make_event(
            datetime(2024, 3, 10),
            datetime(2024, 3, 11),
            RecurrenceRule("yearly"),
            all_day=True,
        )
        occurrences = expand_event(event, datetime(2026, 1, 1), datetime(2027, 1, 1))
        self.assertEqual(1, len(occurrences))
        self.assertEqual(datetime(2026, 3, 10), occurrences[0].start)
        self.assertEqual(datetime(2026, 3, 11), occurrences[0].end)
        self.assertTrue(occurrences[0].all_day)

    def test_unsupported_frequency(self):
        event = make_event(
            utc(2024, 1, 1, 9), utc(2024, 1, 1, 10), RecurrenceRule("hourly")
        )
        occurrences = expand_event(event, utc(2024, 1, 1), utc(2024, 1, 2))
        self.assertEqual(["ev1"], [o.id for o in occurrences])


class ExpandEventsTests(unittest.TestCase):
    def test_merged_by_start(self):
        daily = make_event(
            utc(2024, 1, 1, 9),
            utc(2024, 1, 1, 10),
            RecurrenceRule("daily"),
            id="daily",
        )
        single = make_event(utc(2024, 1, 2, 8), utc(2024, 1, 2, 9), id="single")
        occurrences = expand_events([daily, single], utc(2024, 1, 1), utc(2024, 1, 4))
        self.assertEqual(
            [
                "daily_20240101T090000Z",
                "single",
                "daily_20240102T090000Z",
                "daily_20240103T090000Z",
            ],
            [o.id for o in occurrences],
        )


if __name__ == "__main__":
    unittest.main()
