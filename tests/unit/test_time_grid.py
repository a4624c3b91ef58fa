"""Unit tests for day-canvas geometry."""

from datetime import datetime

import pytest

from cortex.core.errors import InvalidTimeRangeError
from cortex.modules.tasks import time_grid


@pytest.mark.unit
class TestClockConversion:
    """Tests for time <-> offset conversion."""

    def test_time_to_offset(self):
        assert time_grid.time_to_offset("00:00") == 0
        assert time_grid.time_to_offset("01:30") == 120
        assert time_grid.time_to_offset("23:45") == 1900

    def test_offset_to_time_exact(self):
        assert time_grid.offset_to_time(120) == "01:30"

    def test_offset_to_time_rounds_to_nearest_quarter(self):
        # 125px = 93.75 min, nearer to 01:30 than 01:45
        assert time_grid.offset_to_time(125) == "01:30"
        # 130px = 97.5 min, exactly between, halves round up
        assert time_grid.offset_to_time(130) == "01:45"

    def test_offset_to_time_wraps_at_midnight(self):
        assert time_grid.offset_to_time(1920) == "00:00"
        assert time_grid.offset_to_time(2000) == "01:00"

    def test_round_trip_on_grid(self):
        for minutes in range(0, 24 * 60, 15):
            clock = time_grid.format_time(minutes)
            assert time_grid.offset_to_time(time_grid.time_to_offset(clock)) == clock

    def test_round_trip_off_grid_quantizes(self):
        assert time_grid.offset_to_time(time_grid.time_to_offset("09:07")) == "09:00"
        assert time_grid.offset_to_time(time_grid.time_to_offset("09:08")) == "09:15"

    def test_format_time_wraps(self):
        assert time_grid.format_time(1500) == "01:00"

    def test_current_time_offset(self):
        assert time_grid.current_time_offset(datetime(2026, 3, 2, 10, 30)) == 840


@pytest.mark.unit
class TestValidateTimeRange:
    """Tests for time range validation."""

    def test_both_empty_is_allowed(self):
        assert time_grid.validate_time_range(None, None) is None

    def test_valid_range(self):
        assert time_grid.validate_time_range("09:00", "10:30") == (540, 630)

    @pytest.mark.parametrize(
        ("start", "end"),
        [
            ("10:00", "09:00"),
            ("10:00", "10:00"),
            ("10:00", None),
            (None, "10:00"),
            ("24:00", "24:30"),
            ("9am", "10:00"),
            ("09:60", "10:00"),
        ],
    )
    def test_invalid_ranges_rejected(self, start, end):
        with pytest.raises(InvalidTimeRangeError):
            time_grid.validate_time_range(start, end)


@pytest.mark.unit
class TestPositionOf:
    """Tests for block geometry."""

    def test_position_and_height(self):
        position = time_grid.position_of("09:00", "10:30")
        assert position.top == 720
        assert position.height == 120

    def test_short_task_gets_minimum_height(self):
        position = time_grid.position_of("09:00", "09:15")
        assert position.top == 720
        assert position.height == 40

    def test_inverted_range_rejected(self):
        with pytest.raises(InvalidTimeRangeError):
            time_grid.position_of("10:00", "09:00")


@pytest.mark.unit
class TestGestures:
    """Tests for drag and double-click resolution."""

    def test_drag_snaps_start_and_keeps_duration(self):
        slot = time_grid.drag_move(1000, "09:00", "10:45")
        assert (slot.start_time, slot.end_time) == ("12:30", "14:15")

    def test_drag_preserves_off_grid_duration(self):
        slot = time_grid.drag_move(333, "09:07", "09:52")
        assert slot.start_time == "04:15"
        assert slot.end_time == "05:00"

    @pytest.mark.parametrize("pointer", [0, 37, 410, 999.5, 1234, 1700])
    def test_drag_duration_invariant(self, pointer):
        slot = time_grid.drag_move(pointer, "13:10", "14:35")
        duration = time_grid.parse_time(slot.end_time) - time_grid.parse_time(slot.start_time)
        assert duration == 85

    def test_drag_past_midnight_is_clamped(self):
        slot = time_grid.drag_move(1900, "09:00", "10:00")
        assert (slot.start_time, slot.end_time) == ("22:45", "23:45")

    def test_drag_above_canvas_is_clamped(self):
        slot = time_grid.drag_move(-50, "09:00", "09:30")
        assert (slot.start_time, slot.end_time) == ("00:00", "00:30")

    def test_double_click_proposes_one_hour(self):
        slot = time_grid.slot_for_double_click(1000)
        assert (slot.start_time, slot.end_time) == ("12:30", "13:30")

    def test_double_click_near_midnight(self):
        slot = time_grid.slot_for_double_click(1910)
        assert (slot.start_time, slot.end_time) == ("22:45", "23:45")
