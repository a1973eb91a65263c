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

"""RFC 5545 recurrence rules.

See https://www.rfc-editor.org/rfc/rfc5545#section-3.3.10
"""

import collections
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional

from icalendar.prop import vDDDTypes

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

WEEKDAYS = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")

WEEKDAY_NAMES = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}

# A BYDAY entry, e.g. ByDay("MO", 1) for the first Monday or ByDay("FR", -1)
# for the last Friday. A position of None means every such weekday.
ByDay = collections.namedtuple("ByDay", ["day", "position"], defaults=[None])

_BYDAY_RE = re.compile(r"^([+-]?\d{1,2})?([A-Z]{2})$")


logger = logging.getLogger(__name__)


class RecurrenceRule:
    """A parsed recurrence rule.

    ``until`` is inclusive and can be a date, a naive (local) datetime or
    an aware datetime. ``count`` and ``until`` should not both be set.
    """

    _fields = (
        "frequency",
        "interval",
        "count",
        "until",
        "by_day",
        "by_month_day",
        "by_month",
        "by_set_pos",
        "by_week_no",
        "by_year_day",
        "week_start",
        "exdates",
        "rdates",
    )

    def __init__(
        self,
        frequency: str,
        interval: int = 1,
        count: Optional[int] = None,
        until=None,
        by_day=None,
        by_month_day=None,
        by_month=None,
        by_set_pos=None,
        by_week_no=None,
        by_year_day=None,
        week_start: Optional[str] = None,
        exdates=None,
        rdates=None,
    ) -> None:
        self.frequency = frequency
        self.interval = interval
        self.count = count
        self.until = until
        self.by_day = list(by_day or [])
        self.by_month_day = list(by_month_day or [])
        self.by_month = list(by_month or [])
        self.by_set_pos = list(by_set_pos or [])
        self.by_week_no = list(by_week_no or [])
        self.by_year_day = list(by_year_day or [])
        self.week_start = week_start
        self.exdates = list(exdates or [])
        self.rdates = list(rdates or [])

    def _values(self):
        return tuple(getattr(self, name) for name in self._fields)

    def __eq__(self, other):
        if not isinstance(other, RecurrenceRule):
            return NotImplemented
        return self._values() == other._values()

    def __repr__(self) -> str:
        args = ", ".join(
            f"{name}={value!r}"
            for name, value in zip(self._fields, self._values())
            if value not in (None, [])
        )
        return f"{self.__class__.__name__}({args})"


def _parse_int_list(value):
    return [int(v) for v in value.split(",") if v]


def _parse_by_day(value):
    ret = []
    for entry in value.upper().split(","):
        if not entry:
            continue
        m = _BYDAY_RE.match(entry)
        if not m or m.group(2) not in WEEKDAYS:
            raise ValueError(f"invalid BYDAY entry {entry!r}")
        position = int(m.group(1)) if m.group(1) else None
        ret.append(ByDay(m.group(2), position or None))
    return ret


def _parse_weekday(value):
    value = value.upper()
    if value not in WEEKDAYS:
        raise ValueError(f"invalid weekday {value!r}")
    return value


def _parse_until(value):
    until = vDDDTypes.from_ical(value.upper())
    if not isinstance(until, date):
        raise ValueError(f"invalid UNTIL {value!r}")
    return until


_PARSERS = {
    "INTERVAL": ("interval", int),
    "COUNT": ("count", int),
    "UNTIL": ("until", _parse_until),
    "BYDAY": ("by_day", _parse_by_day),
    "BYMONTHDAY": ("by_month_day", _parse_int_list),
    "BYMONTH": ("by_month", _parse_int_list),
    "BYSETPOS": ("by_set_pos", _parse_int_list),
    "BYWEEKNO": ("by_week_no", _parse_int_list),
    "BYYEARDAY": ("by_year_day", _parse_int_list),
    "WKST": ("week_start", _parse_weekday),
}


def parse_rrule(text: str) -> Optional[RecurrenceRule]:
    """Parse the value of an RRULE property.

    Args:
      text: Rule text, optionally prefixed with ``RRULE:``
    Returns: a RecurrenceRule, or None if the rule has no supported
      frequency or can not be parsed
    """
    if not text:
        return None
    text = text.strip()
    if text[:6].upper() == "RRULE:":
        text = text[6:]
    parts = {}
    for token in text.split(";"):
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            continue
        parts[key.strip().upper()] = value.strip()

    frequency = parts.pop("FREQ", "").lower()
    if frequency not in FREQUENCIES:
        logger.debug("Ignoring rule %r without supported frequency", text)
        return None

    rule = RecurrenceRule(frequency)
    for key, value in parts.items():
        try:
            (attr, parser) = _PARSERS[key]
        except KeyError:
            continue
        try:
            setattr(rule, attr, parser(value))
        except ValueError as exc:
            logger.debug("Ignoring malformed rule %r: %s", text, exc)
            return None
    return rule


def _format_until(until) -> str:
    if isinstance(until, datetime) and until.tzinfo is not None:
        until = until.astimezone(timezone.utc)
    return vDDDTypes(until).to_ical().decode("ascii")


def _format_by_day(by_day) -> str:
    if by_day.position:
        return f"{by_day.position}{by_day.day}"
    return by_day.day


def serialize_rrule(rule: RecurrenceRule) -> str:
    """Serialize a recurrence rule to the value of an RRULE property.

    The output is canonical: FREQ comes first, and COUNT wins over UNTIL
    if a rule carries both.
    """
    parts = [f"FREQ={rule.frequency.upper()}"]
    if rule.interval != 1:
        parts.append(f"INTERVAL={rule.interval}")
    if rule.count:
        parts.append(f"COUNT={rule.count}")
    elif rule.until is not None:
        parts.append(f"UNTIL={_format_until(rule.until)}")
    if rule.by_day:
        parts.append("BYDAY=" + ",".join(map(_format_by_day, rule.by_day)))
    for key, values in [
        ("BYMONTHDAY", rule.by_month_day),
        ("BYMONTH", rule.by_month),
        ("BYSETPOS", rule.by_set_pos),
        ("BYWEEKNO", rule.by_week_no),
        ("BYYEARDAY", rule.by_year_day),
    ]:
        if values:
            parts.append(key + "=" + ",".join(map(str, values)))
    if rule.week_start:
        parts.append(f"WKST={rule.week_start}")
    return ";".join(parts)


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


_UNITS = {"daily": "day", "weekly": "week", "monthly": "month", "yearly": "year"}


def describe_rrule(rule: RecurrenceRule) -> str:
    """Describe a recurrence rule in English, e.g. "Weekly on weekdays"."""
    if rule.interval == 1:
        parts = [rule.frequency.capitalize()]
    else:
        parts = [f"Every {rule.interval} {_UNITS[rule.frequency]}s"]

    days = {bd.day for bd in rule.by_day}
    if len(rule.by_day) == 5 and days == {"MO", "TU", "WE", "TH", "FR"}:
        parts.append("on weekdays")
    elif len(rule.by_day) == 2 and days == {"SA", "SU"}:
        parts.append("on weekends")
    elif rule.by_day:
        names = []
        for bd in rule.by_day:
            name = WEEKDAY_NAMES[bd.day]
            if bd.position is None:
                names.append(name)
            elif bd.position > 0:
                names.append(f"{_ordinal(bd.position)} {name}")
            else:
                names.append(f"last {name}")
        parts.append("on " + ", ".join(names))

    if rule.count:
        parts.append(f"for {rule.count} occurrences")
    elif rule.until is not None:
        parts.append(f"until {rule.until:%d %b %Y}")
    return " ".join(parts)
