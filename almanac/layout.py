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

"""Layout of events on day and week grids."""

import collections
from datetime import datetime, time
from typing import Optional

# Height in pixels below which an event would become hard to click.
MINIMUM_EVENT_HEIGHT = 20

DEFAULT_PIXELS_PER_HOUR = 60

Position = collections.namedtuple("Position", ["top", "height"])


def events_overlap(a, b) -> bool:
    """Check whether two events overlap.

    Events are half-open intervals, so an event ending exactly when
    another starts does not overlap it.
    """
    return a.start < b.end and a.end > b.start


def group_overlapping(events) -> list[list]:
    """Partition events into clusters of overlapping events.

    Events are added to the current cluster for as long as they start
    before the latest end seen in that cluster. Two events in the same
    cluster therefore do not necessarily overlap each other; they are
    connected through a chain of overlapping events.
    """
    groups = []
    current: list = []
    group_end = None
    for event in sorted(events, key=lambda e: e.start):
        if current and event.start < group_end:
            current.append(event)
            group_end = max(group_end, event.end)
        else:
            if current:
                groups.append(current)
            current = [event]
            group_end = event.end
    if current:
        groups.append(current)
    return groups


def _minutes(delta) -> int:
    return int(delta.total_seconds() / 60)


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time(), tzinfo=dt.tzinfo)


def event_position(
    event,
    day_start: datetime,
    pixels_per_hour: Optional[float] = None,
    minimum_height: Optional[float] = None,
    settings=None,
) -> Position:
    """Compute the vertical placement of a timed event in a day column.

    Args:
      event: Event or occurrence
      day_start: Any time on the day of the column
      pixels_per_hour: Scale of the column
      minimum_height: Smallest height to return
      settings: Optional EngineSettings providing the values not given
    Returns: Position with top and height in pixels
    """
    if pixels_per_hour is None:
        if settings is not None:
            pixels_per_hour = settings.get_pixels_per_hour()
        else:
            pixels_per_hour = DEFAULT_PIXELS_PER_HOUR
    if minimum_height is None:
        if settings is not None:
            minimum_height = settings.get_minimum_height()
        else:
            minimum_height = MINIMUM_EVENT_HEIGHT
    start_minutes = _minutes(event.start - start_of_day(day_start))
    duration_minutes = _minutes(event.end - event.start)
    top = start_minutes / 60 * pixels_per_hour
    height = max(duration_minutes / 60 * pixels_per_hour, minimum_height)
    return Position(top, height)


def is_multi_day_event(event) -> bool:
    return event.start.date() != event.end.date()


def format_event_duration(event) -> str:
    """Describe the length of an event, e.g. "45 min" or "2h 30m"."""
    if event.all_day:
        # All-day events end at midnight after their last day.
        days = max((event.end.date() - event.start.date()).days, 1)
        return "All day" if days == 1 else f"{days} days"
    minutes = _minutes(event.end - event.start)
    if minutes < 60:
        return f"{minutes} min"
    (hours, minutes) = divmod(minutes, 60)
    if minutes == 0:
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{hours}h {minutes}m"
