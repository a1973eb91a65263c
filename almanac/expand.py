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

"""Expansion of recurring events into occurrences."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timezone
from typing import Optional, Union

import dateutil.rrule

from .events import Event, Occurrence
from .rrule import WEEKDAYS

# Upper bound on the number of occurrences returned for a single event,
# regardless of the rule's own COUNT.
DEFAULT_MAX_INSTANCES = 1000

_FREQUENCIES = {
    "daily": dateutil.rrule.DAILY,
    "weekly": dateutil.rrule.WEEKLY,
    "monthly": dateutil.rrule.MONTHLY,
    "yearly": dateutil.rrule.YEARLY,
}


logger = logging.getLogger(__name__)


def as_datetime(dt: Union[date, datetime]) -> datetime:
    if not isinstance(dt, datetime):
        return datetime.combine(dt, time())
    return dt


def _normalize_dt_for_rrule(dt: datetime, original_dt: datetime) -> datetime:
    """Match the timezone awareness of a datetime to that of DTSTART.

    dateutil refuses to compare naive and aware datetimes. Naive datetimes
    are local time, so aware values are converted to local time before
    dropping their timezone.
    """
    if original_dt.tzinfo is None and dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    elif original_dt.tzinfo is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=original_dt.tzinfo)
    return dt


def _exdate_for_rrule(exdate, dtstart: datetime) -> datetime:
    # A date excludes the occurrence starting on that day.
    if not isinstance(exdate, datetime):
        return datetime.combine(exdate, dtstart.time(), tzinfo=dtstart.tzinfo)
    return _normalize_dt_for_rrule(exdate, dtstart)


def _until_for_rrule(until, dtstart: datetime) -> datetime:
    # A date covers the whole day.
    if not isinstance(until, datetime):
        return datetime.combine(until, time.max, tzinfo=dtstart.tzinfo)
    return _normalize_dt_for_rrule(until, dtstart)


def rruleset_from_event(
    event: Event, range_end: Optional[datetime] = None
) -> Optional[dateutil.rrule.rruleset]:
    """Build the recurrence set of an event.

    Args:
      event: Master event
      range_end: Optional upper bound for rules without a COUNT, so that
        rules matching nothing stop iterating there
    Returns: a lazily evaluated rruleset, or None if the event does not
      recur
    """
    rule = event.recurrence
    if rule is None or rule.frequency not in _FREQUENCIES:
        return None
    dtstart = as_datetime(event.start)

    interval = rule.interval
    if interval is None or interval < 1:
        logger.warning("Treating interval %r of event %s as 1", interval, event.id)
        interval = 1
    count = rule.count if rule.count and rule.count > 0 else None
    until = None
    if count is None:
        if rule.until is not None:
            until = _until_for_rrule(rule.until, dtstart)
        if range_end is not None:
            range_end = _normalize_dt_for_rrule(as_datetime(range_end), dtstart)
            if until is None or range_end < until:
                until = range_end
    byweekday = [
        dateutil.rrule.weekdays[WEEKDAYS.index(bd.day)](bd.position)
        for bd in rule.by_day
    ]
    try:
        rrule = dateutil.rrule.rrule(
            _FREQUENCIES[rule.frequency],
            dtstart=dtstart,
            interval=interval,
            count=count,
            until=until,
            byweekday=byweekday or None,
            bymonthday=rule.by_month_day or None,
            bymonth=rule.by_month or None,
            bysetpos=rule.by_set_pos or None,
            byweekno=rule.by_week_no or None,
            byyearday=rule.by_year_day or None,
            wkst=WEEKDAYS.index(rule.week_start) if rule.week_start else None,
            cache=True,
        )
    except ValueError as exc:
        logger.debug("Unable to expand recurrence of event %s: %s", event.id, exc)
        return None
    rs = dateutil.rrule.rruleset(cache=True)
    rs.rrule(rrule)
    for exdate in rule.exdates:
        rs.exdate(_exdate_for_rrule(exdate, dtstart))
    for rdate in rule.rdates:
        rs.rdate(_normalize_dt_for_rrule(as_datetime(rdate), dtstart))
    return rs


def occurrence_id(master_id: str, start: Union[date, datetime]) -> str:
    """Derive the id of an occurrence from its master and start time."""
    start = as_datetime(start)
    if start.tzinfo is not None:
        return f"{master_id}_{start.astimezone(timezone.utc):%Y%m%dT%H%M%SZ}"
    return f"{master_id}_{start:%Y%m%dT%H%M%S}"


def expand_event(
    event: Event,
    range_start: datetime,
    range_end: datetime,
    max_instances: Optional[int] = None,
    settings=None,
) -> list[Occurrence]:
    """Expand an event into the occurrences overlapping a time range.

    The range is half-open: an occurrence overlaps it if it starts before
    ``range_end`` and ends after ``range_start``.

    Args:
      event: Master event
      range_start: Start of the range
      range_end: End of the range
      max_instances: Maximum number of occurrences to return; defaults to
        the value from ``settings``
      settings: Optional EngineSettings
    Returns: list of occurrences, ordered by start time
    """
    if max_instances is None:
        if settings is not None:
            max_instances = settings.get_max_instances()
        else:
            max_instances = DEFAULT_MAX_INSTANCES
    start = as_datetime(event.start)
    end = as_datetime(event.end)
    range_start = _normalize_dt_for_rrule(as_datetime(range_start), start)
    range_end = _normalize_dt_for_rrule(as_datetime(range_end), start)

    rs = rruleset_from_event(event, range_end)
    if rs is None:
        if start < range_end and end > range_start:
            return [Occurrence(event.id, event.start, event.end, event)]
        return []

    duration = end - start
    rule = event.recurrence
    # COUNT already bounds the set; UNTIL still applies if both are given.
    until = None
    if rule.until is not None:
        until = _until_for_rrule(rule.until, start)

    ret: list[Occurrence] = []
    for ts in rs.xafter(range_start - duration, inc=True):
        if ts >= range_end:
            break
        if until is not None and ts > until:
            break
        if not ts + duration > range_start:
            continue
        if len(ret) >= max_instances:
            logger.debug(
                "Truncated expansion of event %s at %d instances", event.id, max_instances
            )
            break
        ret.append(
            Occurrence(
                occurrence_id(event.id, ts),
                ts,
                ts + duration,
                event,
                is_recurrence_instance=True,
                master_event_id=event.id,
            )
        )
    return ret


def expand_events(
    events: Iterable[Event],
    range_start: datetime,
    range_end: datetime,
    max_instances: Optional[int] = None,
    settings=None,
) -> list[Occurrence]:
    """Expand several events and merge their occurrences by start time."""
    ret: list[Occurrence] = []
    for event in events:
        ret.extend(
            expand_event(event, range_start, range_end, max_instances, settings)
        )
    ret.sort(key=lambda occurrence: occurrence.start)
    return ret
