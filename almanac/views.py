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

"""Display windows and navigation for calendar views.

Week starts are numbered as in JavaScript's ``Date.getDay``: 0 is Sunday,
1 is Monday.
"""

import collections
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

VIEWS = ("day", "week", "month", "year", "agenda")

AGENDA_LENGTH = timedelta(weeks=4)

ViewRange = collections.namedtuple("ViewRange", ["start", "end"])

_STEPS = {
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
    "agenda": relativedelta(weeks=1),
}


def start_of_day(dt: Union[date, datetime]) -> datetime:
    if not isinstance(dt, datetime):
        return datetime.combine(dt, time())
    return datetime.combine(dt.date(), time(), tzinfo=dt.tzinfo)


def end_of_day(dt: Union[date, datetime]) -> datetime:
    if not isinstance(dt, datetime):
        return datetime.combine(dt, time.max)
    return datetime.combine(dt.date(), time.max, tzinfo=dt.tzinfo)


def start_of_week(dt: Union[date, datetime], week_start: int = 0) -> datetime:
    if not 0 <= week_start <= 6:
        raise ValueError(f"invalid week start {week_start!r}")
    days = (dt.isoweekday() % 7 - week_start) % 7
    return start_of_day(dt - timedelta(days=days))


def end_of_week(dt: Union[date, datetime], week_start: int = 0) -> datetime:
    return end_of_day(start_of_week(dt, week_start) + timedelta(days=6))


def _week_start(week_start, settings) -> int:
    if week_start is not None:
        return week_start
    if settings is not None:
        return settings.get_week_start()
    return 0


def view_range(
    anchor: Union[date, datetime],
    view: str,
    week_start: Optional[int] = None,
    settings=None,
) -> ViewRange:
    """Compute the window of time displayed by a view.

    Both ends of the window are inclusive. Month views cover full weeks,
    so the window starts and ends in the neighbouring months when the
    month does not start or end on a week boundary.

    Args:
      anchor: Date or datetime to display
      view: One of VIEWS
      week_start: First day of the week (0=Sunday, 1=Monday); defaults to
        the value from ``settings``, or Sunday
      settings: Optional EngineSettings
    Returns: ViewRange with start and end datetimes
    """
    week_start = _week_start(week_start, settings)
    if view == "day":
        return ViewRange(start_of_day(anchor), end_of_day(anchor))
    elif view == "week":
        return ViewRange(
            start_of_week(anchor, week_start), end_of_week(anchor, week_start)
        )
    elif view == "year":
        return ViewRange(
            start_of_day(anchor.replace(month=1, day=1)),
            end_of_day(anchor.replace(month=12, day=31)),
        )
    elif view == "agenda":
        return ViewRange(start_of_day(anchor), end_of_day(anchor + AGENDA_LENGTH))
    first = anchor.replace(day=1)
    last = first + relativedelta(months=1, days=-1)
    if view == "month":
        return ViewRange(
            start_of_week(first, week_start), end_of_week(last, week_start)
        )
    return ViewRange(start_of_day(first), end_of_day(last))


def navigate(anchor: Union[date, datetime], view: str, direction: str):
    """Move the anchor of a view to the next or previous period.

    Args:
      anchor: Current anchor
      view: One of VIEWS
      direction: "next" or "prev"
    Returns: new anchor, of the same type as ``anchor``
    Raises:
      ValueError: for an unknown view or direction
    """
    try:
        step = _STEPS[view]
    except KeyError as exc:
        raise ValueError(f"unknown view {view!r}") from exc
    if direction == "next":
        return anchor + step
    elif direction == "prev":
        return anchor - step
    raise ValueError(f"unknown direction {direction!r}")


def month_view_days(
    anchor: Union[date, datetime], week_start: Optional[int] = None, settings=None
) -> list[date]:
    """List the days shown in the grid of a month view."""
    (start, end) = view_range(anchor, "month", week_start, settings)
    return [
        start.date() + timedelta(days=i)
        for i in range((end.date() - start.date()).days + 1)
    ]


def month_view_weeks(
    anchor: Union[date, datetime], week_start: Optional[int] = None, settings=None
) -> list[list[date]]:
    days = month_view_days(anchor, week_start, settings)
    return [days[i : i + 7] for i in range(0, len(days), 7)]
