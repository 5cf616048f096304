"""
Unit tests for reminder time calculation.
"""

import pytest

from kitchen_ops.modules.reminders.calculator import (
    FALLBACK_TIMES, calculate_reminder_times, format_time, parse_time, work_hours
)


class TestCalculateReminderTimes:
    def test_three_reminders_cover_start_middle_end(self):
        assert calculate_reminder_times("08:00", "17:00", 3) == ["08:00", "12:30", "17:00"]

    def test_two_reminders_stop_at_midpoint(self):
        assert calculate_reminder_times("08:00", "16:00", 2) == ["08:00", "12:00"]

    def test_single_reminder_is_start(self):
        assert calculate_reminder_times("07:30", "15:30", 1) == ["07:30"]

    def test_midpoint_truncates_to_minute(self):
        # 08:00 -> 17:01 has its midpoint at 12:30:30
        assert calculate_reminder_times("08:00", "17:01", 2) == ["08:00", "12:30"]

    def test_seconds_in_input_are_accepted(self):
        assert calculate_reminder_times("08:00:00", "12:00:00", 3) == ["08:00", "10:00", "12:00"]

    @pytest.mark.parametrize("inicio, fim", [(None, "17:00"), ("08:00", None), ("8h", "17h"), ("", "")])
    def test_invalid_bounds_use_fallback(self, inicio, fim):
        assert calculate_reminder_times(inicio, fim, 2) == FALLBACK_TIMES[:2]

    def test_zero_frequency_gives_nothing(self):
        assert calculate_reminder_times("08:00", "17:00", 0) == []


class TestTimeHelpers:
    def test_parse_time_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_time("25:99")

    def test_format_time_keeps_unparseable_text(self):
        assert format_time("noon") == "noon"
        assert format_time("09:15:59") == "09:15"

    def test_work_hours(self):
        assert work_hours("08:00", "17:00") == 9.0
        assert work_hours("08:00", "12:30") == 4.5

    def test_work_hours_without_bounds_is_zero(self):
        assert work_hours(None, "17:00") == 0.0
        assert work_hours("08:00", "nope") == 0.0
