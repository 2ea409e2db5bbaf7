import calendar
import copy
import datetime as dt
import unittest

from dogwalking.schedule.calendar import (
    build_calendar,
    build_day_grid,
    build_holiday_lookup,
    build_month_grid,
    build_week_grid,
    calculate_end_time,
    filter_past_walks,
    filter_upcoming_walks,
    find_holiday_for_date,
    group_walks_by_date,
    holiday_status_class,
    is_group_walk,
)
from dogwalking.schedule.records import CalendarCursor, MalformedTimeError, ViewMode


def make_walk(walk_id, date="2024-06-20", start_time="10:00", time_slot="AM", **extra):
    walk = {
        "id": walk_id,
        "dog_id": "d-" + walk_id,
        "walker_id": "walker-1",
        "date": date,
        "start_time": start_time,
        "time_slot": time_slot,
        "duration": 45,
        "status": "scheduled",
    }
    walk.update(extra)
    return walk


class GroupingTestCase(unittest.TestCase):
    def test_group_walks_by_date_keeps_input_order(self) -> None:
        walks = [
            make_walk("w3", date="2024-06-21"),
            make_walk("w1", start_time="15:00", time_slot="PM"),
            make_walk("w2", start_time="08:00"),
        ]
        grouped = group_walks_by_date(walks)
        self.assertEqual(list(grouped), ["2024-06-21", "2024-06-20"])
        self.assertEqual([walk["id"] for walk in grouped["2024-06-20"]], ["w1", "w2"])

    def test_group_walks_by_date_empty(self) -> None:
        self.assertEqual(group_walks_by_date([]), {})

    def test_group_walks_by_date_accepts_dates_and_timestamps(self) -> None:
        walks = [
            make_walk("w1", date=dt.date(2024, 6, 20)),
            make_walk("w2", date="2024-06-20T00:00:00.000Z"),
        ]
        grouped = group_walks_by_date(walks)
        self.assertEqual(list(grouped), ["2024-06-20"])
        self.assertEqual(len(grouped["2024-06-20"]), 2)

    def test_grouping_is_idempotent_and_does_not_mutate(self) -> None:
        walks = [make_walk("w1"), make_walk("w2", date="2024-06-22")]
        snapshot = copy.deepcopy(walks)
        first = group_walks_by_date(walks)
        second = group_walks_by_date(walks)
        self.assertEqual(first, second)
        self.assertEqual(walks, snapshot)

    def test_group_walk_pair(self) -> None:
        w1, w2 = make_walk("w1"), make_walk("w2")
        self.assertTrue(is_group_walk(w1, [w1, w2]))
        self.assertTrue(is_group_walk(w2, [w1, w2]))

    def test_lone_walk_is_not_group_walk(self) -> None:
        w1 = make_walk("w1")
        self.assertFalse(is_group_walk(w1, [w1]))
        self.assertFalse(is_group_walk(w1, []))

    def test_group_walk_requires_exact_match(self) -> None:
        w1 = make_walk("w1", start_time="10:00")
        overlapping = make_walk("w2", start_time="10:15")
        other_slot = make_walk("w3", time_slot="PM")
        other_day = make_walk("w4", date="2024-06-21")
        cohort = [w1, overlapping, other_slot, other_day]
        self.assertFalse(is_group_walk(w1, cohort))

    def test_group_walk_symmetry(self) -> None:
        cohort = [
            make_walk("w1"),
            make_walk("w2"),
            make_walk("w3", start_time="16:00", time_slot="PM"),
            make_walk("w4", start_time="16:00", time_slot="PM"),
            make_walk("w5", start_time="18:00", time_slot="PM"),
        ]
        for walk in cohort:
            if not is_group_walk(walk, cohort):
                continue
            partners = [
                other
                for other in cohort
                if other is not walk
                and is_group_walk(other, cohort)
                and other["start_time"] == walk["start_time"]
                and other["time_slot"] == walk["time_slot"]
                and other["date"] == walk["date"]
            ]
            self.assertTrue(partners, walk["id"])
        self.assertFalse(is_group_walk(cohort[4], cohort))

    def test_find_holiday_for_date_first_match_wins(self) -> None:
        requests = [
            {"id": "h1", "walker_id": "walker-1", "date": "2024-06-19", "status": "pending"},
            {"id": "h2", "walker_id": "walker-1", "date": "2024-06-20", "status": "denied"},
            {"id": "h3", "walker_id": "walker-1", "date": "2024-06-20", "status": "approved"},
        ]
        self.assertEqual(find_holiday_for_date("2024-06-20", requests)["id"], "h2")
        self.assertIsNone(find_holiday_for_date("2024-06-21", requests))
        self.assertEqual(build_holiday_lookup(requests)["2024-06-20"]["id"], "h2")

    def test_holiday_status_class(self) -> None:
        self.assertIn("green", holiday_status_class("approved"))
        self.assertIn("amber", holiday_status_class("pending"))
        self.assertIn("red", holiday_status_class("denied"))
        self.assertIn("gray", holiday_status_class("archived"))
        self.assertIsNone(holiday_status_class(None))

    def test_upcoming_and_past_filters(self) -> None:
        today = dt.date(2024, 6, 20)
        walks = [
            make_walk("late", date="2024-06-25"),
            make_walk("today", date="2024-06-20"),
            make_walk("cancelled", date="2024-06-22", status="cancelled"),
            make_walk("old", date="2024-06-10"),
            make_walk("older", date="2024-06-01"),
            make_walk("other", date="2024-06-21", walker_id="walker-2"),
        ]
        upcoming = filter_upcoming_walks(walks, today, walker_id="walker-1")
        self.assertEqual([walk["id"] for walk in upcoming], ["today", "late"])
        self.assertEqual(len(filter_upcoming_walks(walks, today, limit=1)), 1)
        self.assertEqual(filter_upcoming_walks(walks, today, limit=0), [])
        self.assertEqual(filter_past_walks(walks, today, limit=0), [])
        past = filter_past_walks(walks, today)
        self.assertEqual([walk["id"] for walk in past], ["old", "older"])


class GridTestCase(unittest.TestCase):
    def test_scenario_single_walk_in_month(self) -> None:
        walk = make_walk("w1")
        grid = build_month_grid(
            dt.date(2024, 6, 1), group_walks_by_date([walk]), build_holiday_lookup([])
        )
        for week in grid:
            for cell in week:
                if cell is None:
                    continue
                if cell["date_key"] == "2024-06-20":
                    self.assertEqual(cell["walks"], [walk])
                else:
                    self.assertEqual(cell["walks"], [])

    def test_scenario_holiday_without_walks(self) -> None:
        holiday = {"id": "h1", "walker_id": "w1", "date": "2024-06-20", "status": "approved"}
        grid = build_month_grid(dt.date(2024, 6, 1), {}, build_holiday_lookup([holiday]))
        cells = {cell["date_key"]: cell for week in grid for cell in week if cell}
        cell = cells["2024-06-20"]
        self.assertTrue(cell["has_holiday_request"])
        self.assertEqual(cell["holiday_status"], "approved")
        self.assertEqual(cell["holiday_request"], holiday)
        self.assertEqual(cell["walks"], [])
        self.assertFalse(cells["2024-06-21"]["has_holiday_request"])
        self.assertIsNone(cells["2024-06-21"]["holiday_status"])

    def test_month_grid_is_complete_and_aligned(self) -> None:
        for year in (2023, 2024, 2025, 2026):
            for month in range(1, 13):
                grid = build_month_grid(dt.date(year, month, 15), {}, {})
                seen = set()
                for week in grid:
                    self.assertEqual(len(week), 7)
                    for column, cell in enumerate(week):
                        if cell is None:
                            continue
                        self.assertEqual((cell["date"].weekday() + 1) % 7, column)
                        seen.add(cell["date"])
                days = calendar.monthrange(year, month)[1]
                expected = {dt.date(year, month, day) for day in range(1, days + 1)}
                self.assertEqual(seen, expected, f"{year}-{month}")

    def test_month_grid_padding(self) -> None:
        # June 2024 starts on a Saturday
        grid = build_month_grid(dt.date(2024, 6, 20), {}, {})
        self.assertEqual(len(grid), 6)
        self.assertEqual(grid[0][:6], [None] * 6)
        self.assertEqual(grid[0][6]["date"], dt.date(2024, 6, 1))
        self.assertEqual(grid[-1][0]["date"], dt.date(2024, 6, 30))
        self.assertEqual(grid[-1][1:], [None] * 6)

    def test_month_grid_marks_today_and_groups(self) -> None:
        walks = [make_walk("w1"), make_walk("w2"), make_walk("w3", start_time="17:00", time_slot="PM")]
        grid = build_month_grid(
            dt.date(2024, 6, 1), group_walks_by_date(walks), {}, today=dt.date(2024, 6, 20)
        )
        cells = {cell["date_key"]: cell for week in grid for cell in week if cell}
        self.assertTrue(cells["2024-06-20"]["is_today"])
        self.assertFalse(cells["2024-06-19"]["is_today"])
        self.assertEqual(cells["2024-06-20"]["group_walk_ids"], ["w1", "w2"])

    def test_week_grid_starts_on_sunday(self) -> None:
        walk = make_walk("w1")
        week = build_week_grid(dt.date(2024, 6, 20), group_walks_by_date([walk]), {})
        self.assertEqual(len(week), 7)
        self.assertEqual(week[0]["date"], dt.date(2024, 6, 16))
        self.assertEqual(week[-1]["date"], dt.date(2024, 6, 22))
        for column, cell in enumerate(week):
            self.assertEqual((cell["date"].weekday() + 1) % 7, column)
        self.assertEqual(week[4]["walks"], [walk])

    def test_week_grid_on_sunday_reference(self) -> None:
        week = build_week_grid(dt.date(2024, 6, 16), {}, {})
        self.assertEqual(week[0]["date"], dt.date(2024, 6, 16))

    def test_day_grid_slots(self) -> None:
        walks = [
            make_walk("early", start_time="06:30"),
            make_walk("noon", start_time="12:00", time_slot="PM"),
            make_walk("late", start_time="21:45", time_slot="PM"),
            make_walk("night", start_time="23:00", time_slot="PM"),
        ]
        grid = build_day_grid(dt.date(2024, 6, 20), group_walks_by_date(walks), {})
        slots = grid["time_slots"]
        self.assertEqual([slot["hour"] for slot in slots], list(range(6, 22)))
        self.assertEqual(slots[0]["display"], "6 AM")
        self.assertEqual(slots[6]["display"], "12 PM")
        self.assertEqual(slots[-1]["display"], "9 PM")
        by_hour = {slot["hour"]: [walk["id"] for walk in slot["walks"]] for slot in slots}
        self.assertEqual(by_hour[6], ["early"])
        self.assertEqual(by_hour[12], ["noon"])
        self.assertEqual(by_hour[21], ["late"])
        self.assertFalse(grid["has_holiday_request"])

    def test_day_grid_skips_malformed_start_time(self) -> None:
        good = make_walk("good")
        bad = make_walk("bad", start_time="ten o'clock")
        walks_by_date = group_walks_by_date([good, bad])
        with self.assertLogs("dogwalking.schedule.calendar", level="WARNING"):
            grid = build_day_grid(dt.date(2024, 6, 20), walks_by_date, {})
        ids = [walk["id"] for slot in grid["time_slots"] for walk in slot["walks"]]
        self.assertEqual(ids, ["good"])

        month = build_month_grid(dt.date(2024, 6, 1), walks_by_date, {})
        cells = {cell["date_key"]: cell for week in month for cell in week if cell}
        self.assertEqual([walk["id"] for walk in cells["2024-06-20"]["walks"]], ["good", "bad"])

    def test_day_grid_reads_hour_before_colon(self) -> None:
        walks = [
            make_walk("suffixed", start_time="10:00 AM"),
            make_walk("millis", start_time="10:00:00.000"),
            make_walk("short", start_time="10:0"),
            make_walk("blank", start_time=":30"),
        ]
        with self.assertLogs("dogwalking.schedule.calendar", level="WARNING") as logs:
            grid = build_day_grid(dt.date(2024, 6, 20), group_walks_by_date(walks), {})
        by_hour = {slot["hour"]: [walk["id"] for walk in slot["walks"]] for slot in grid["time_slots"]}
        self.assertEqual(by_hour[10], ["suffixed", "millis", "short"])
        self.assertEqual(len(logs.records), 1)
        self.assertIn("blank", logs.output[0])

    def test_build_calendar_dispatches_on_view(self) -> None:
        walks = [make_walk("w1")]
        month = build_calendar(CalendarCursor(dt.date(2024, 6, 20)), walks, [])
        self.assertEqual(month["view"], "month")
        self.assertEqual(month["title"], "June 2024")
        self.assertIsInstance(month["grid"][0], list)

        week = build_calendar(CalendarCursor(dt.date(2024, 6, 20), ViewMode.WEEK), walks, [])
        self.assertEqual(len(week["grid"]), 7)

        day = build_calendar(CalendarCursor(dt.date(2024, 6, 20), ViewMode.DAY), walks, [])
        self.assertEqual(len(day["grid"]["time_slots"]), 16)
        self.assertEqual(day["title"], "Thursday, June 20, 2024")


class EndTimeTestCase(unittest.TestCase):
    def test_simple_end_time(self) -> None:
        self.assertEqual(calculate_end_time("10:00", 45), "10:45")
        self.assertEqual(calculate_end_time("09:30", 90), "11:00")

    def test_midnight_rollover(self) -> None:
        self.assertEqual(calculate_end_time("23:50", 20), "00:10")

    def test_end_time_is_later_than_start(self) -> None:
        for start in ("00:00", "06:15", "11:59", "12:00", "17:05", "22:30"):
            hour, minute = map(int, start.split(":"))
            start_minutes = hour * 60 + minute
            for duration in (1, 15, 30, 45, 60, 90):
                if start_minutes + duration >= 24 * 60:
                    continue
                end_hour, end_minute = map(int, calculate_end_time(start, duration).split(":"))
                self.assertGreater(end_hour * 60 + end_minute, start_minutes)

    def test_malformed_start_time(self) -> None:
        with self.assertRaises(MalformedTimeError):
            calculate_end_time("noon", 30)
        with self.assertRaises(ValueError):
            calculate_end_time("25:00", 30)


if __name__ == "__main__":
    unittest.main()
