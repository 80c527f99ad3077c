from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from econ_newsletter.jobs.cron import CronExpression


class TestCronParsing:
    def test_wildcards_and_steps(self):
        cron = CronExpression("*/15 */4 * * *")
        assert cron.minutes == frozenset({0, 15, 30, 45})
        assert cron.hours == frozenset({0, 4, 8, 12, 16, 20})

    def test_ranges_lists_and_stepped_ranges(self):
        cron = CronExpression("0,30 9-17/2 1-3 1,6 1-5")
        assert cron.minutes == frozenset({0, 30})
        assert cron.hours == frozenset({9, 11, 13, 15, 17})
        assert cron.days == frozenset({1, 2, 3})
        assert cron.months == frozenset({1, 6})
        assert cron.weekdays == frozenset({1, 2, 3, 4, 5})

    def test_sunday_as_seven(self):
        assert CronExpression("0 0 * * 7").weekdays == frozenset({0})

    @pytest.mark.parametrize("expression", [
        "* * * *",
        "60 * * * *",
        "* 24 * * *",
        "*/0 * * * *",
        "5-1 * * * *",
        "a * * * *",
        "1,,2 * * * *",
    ])
    def test_invalid_expressions(self, expression):
        with pytest.raises(ValueError):
            CronExpression(expression)


class TestNextAfter:
    def test_daily_schedule(self):
        cron = CronExpression("0 8 * * *")
        assert cron.next_after(datetime(2024, 1, 10, 7, 59)) == datetime(2024, 1, 10, 8, 0)
        assert cron.next_after(datetime(2024, 1, 10, 8, 0)) == datetime(2024, 1, 11, 8, 0)

    def test_weekly_schedule(self):
        # Wednesday -> next Monday
        cron = CronExpression("0 9 * * 1")
        assert cron.next_after(datetime(2024, 1, 10, 12, 0)) == datetime(2024, 1, 15, 9, 0)

    def test_friday_evening(self):
        cron = CronExpression("0 17 * * 5")
        assert cron.next_after(datetime(2024, 1, 12, 16, 30)) == datetime(2024, 1, 12, 17, 0)

    def test_every_four_hours(self):
        cron = CronExpression("0 */4 * * *")
        assert cron.next_after(datetime(2024, 1, 10, 13, 5)) == datetime(2024, 1, 10, 16, 0)
        assert cron.next_after(datetime(2024, 1, 10, 23, 0)) == datetime(2024, 1, 11, 0, 0)

    def test_year_rollover(self):
        cron = CronExpression("30 6 1 1 *")
        assert cron.next_after(datetime(2024, 6, 1)) == datetime(2025, 1, 1, 6, 30)

    def test_day_fields_match_either_when_both_restricted(self):
        # 1st of the month or any Friday
        cron = CronExpression("0 0 1 * 5")
        assert cron.next_after(datetime(2024, 1, 10)) == datetime(2024, 1, 12, 0, 0)
        assert cron.next_after(datetime(2024, 1, 27)) == datetime(2024, 2, 1, 0, 0)

    def test_leap_day(self):
        cron = CronExpression("0 0 29 2 *")
        assert cron.next_after(datetime(2024, 3, 1)) == datetime(2028, 2, 29, 0, 0)

    def test_evaluated_in_configured_timezone(self):
        cron = CronExpression("0 8 * * *")
        new_york = ZoneInfo("America/New_York")

        result = cron.next_after(datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc), new_york)

        assert result == datetime(2024, 1, 10, 8, 0, tzinfo=new_york)
        assert result.astimezone(timezone.utc) == datetime(2024, 1, 10, 13, 0, tzinfo=timezone.utc)

    def test_matches(self):
        cron = CronExpression("*/30 9 * * 1-5")
        assert cron.matches(datetime(2024, 1, 10, 9, 30))
        assert not cron.matches(datetime(2024, 1, 13, 9, 30))
