"""Time-grid geometry for the 24-hour day canvas.

Clock times are ``HH:MM`` strings. Offsets are pixels from the top of the
canvas, ``settings.hour_height`` pixels per hour. All functions are pure.
"""

import math
import re
from datetime import datetime

from cortex.core.config import constants, settings
from cortex.core.errors import InvalidTimeRangeError
from cortex.models.service_models import TaskPosition, TimeSlot


_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

# Last minute a block may end on
LAST_MINUTE = constants.MINUTES_PER_DAY - 1


def parse_time(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight.

    Raises:
        InvalidTimeRangeError: If the string is not a valid 24-hour time
    """
    match = _TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        msg = f"Malformed time {value!r}, expected HH:MM"
        raise InvalidTimeRangeError(msg)
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours >= constants.HOURS_PER_DAY or minutes >= constants.MINUTES_PER_HOUR:
        msg = f"Time out of range: {value!r}"
        raise InvalidTimeRangeError(msg)
    return hours * constants.MINUTES_PER_HOUR + minutes


def format_time(minutes: int) -> str:
    """Convert minutes since midnight to ``HH:MM``, wrapping at 24h."""
    minutes = int(minutes) % constants.MINUTES_PER_DAY
    return f"{minutes // constants.MINUTES_PER_HOUR:02d}:{minutes % constants.MINUTES_PER_HOUR:02d}"


def validate_time_range(start_time: str | None, end_time: str | None) -> tuple[int, int] | None:
    """Check a start/end pair before it reaches the geometry functions.

    Returns:
        ``(start_minutes, end_minutes)``, or None when neither time is set

    Raises:
        InvalidTimeRangeError: If only one time is set, either is malformed,
            or the end is not after the start
    """
    if start_time is None and end_time is None:
        return None
    if start_time is None or end_time is None:
        msg = "Invalid time range: start and end must both be set or both be empty"
        raise InvalidTimeRangeError(msg)

    start = parse_time(start_time)
    end = parse_time(end_time)
    if end <= start:
        msg = f"Invalid time range: end {end_time} is not after start {start_time}"
        raise InvalidTimeRangeError(msg)
    return start, end


def snap_minutes(minutes: float) -> int:
    """Round to the nearest grid increment, halves rounding up."""
    step = settings.snap_minutes
    return int(math.floor(minutes / step + 0.5)) * step


def time_to_offset(time: str) -> float:
    """Pixel offset of a clock time."""
    return parse_time(time) / constants.MINUTES_PER_HOUR * settings.hour_height


def offset_to_minutes(pixels: float) -> int:
    """Snapped minutes for a pixel offset, not wrapped."""
    return snap_minutes(pixels / settings.hour_height * constants.MINUTES_PER_HOUR)


def offset_to_time(pixels: float) -> str:
    """Clock time for a pixel offset, snapped to the grid and wrapped at 24h."""
    return format_time(offset_to_minutes(pixels))


def position_of(start_time: str, end_time: str) -> TaskPosition:
    """Block geometry for a validated time range.

    Short tasks are drawn at ``settings.min_task_height`` so they stay visible.
    """
    start, end = validate_time_range(start_time, end_time) or (0, 0)
    top = start / constants.MINUTES_PER_HOUR * settings.hour_height
    height = (end - start) / constants.MINUTES_PER_HOUR * settings.hour_height
    return TaskPosition(top=top, height=max(height, settings.min_task_height))


def latest_start(duration: int) -> int:
    """Latest grid-aligned start that still ends by 23:59."""
    step = settings.snap_minutes
    return max(0, (LAST_MINUTE - duration) // step * step)


def _place(start: int, duration: int) -> TimeSlot:
    start = min(max(start, 0), latest_start(duration))
    return TimeSlot(start_time=format_time(start), end_time=format_time(start + duration))


def drag_move(pointer_offset: float, start_time: str, end_time: str) -> TimeSlot:
    """Resolve a drop into a new slot.

    The new start is the snapped pointer offset; the end keeps the original
    duration exactly. The block is kept inside the day.
    """
    start, end = validate_time_range(start_time, end_time) or (0, 0)
    duration = end - start
    return _place(offset_to_minutes(pointer_offset), duration)


def slot_for_double_click(pointer_offset: float) -> TimeSlot:
    """Default slot proposed when an empty part of the canvas is double-clicked."""
    return _place(offset_to_minutes(pointer_offset), settings.default_task_minutes)


def current_time_offset(now: datetime) -> float:
    """Offset of the "now" indicator, unsnapped."""
    minutes = now.hour * constants.MINUTES_PER_HOUR + now.minute + now.second / 60
    return minutes / constants.MINUTES_PER_HOUR * settings.hour_height
