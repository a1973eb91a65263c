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

"""Reading and writing of iCalendar (RFC 5545) documents."""

import collections
import copy
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from icalendar.cal import Alarm
from icalendar.cal import Calendar as VCalendar
from icalendar.cal import Event as VEvent
from icalendar.prop import vBroken, vCalAddress, vCategory, vDuration, vRecur

from .config import EngineSettings
from .events import EVENT_CATEGORIES, EVENT_STATUSES, Event
from .rrule import parse_rrule, serialize_rrule

STATUS_MAP = {
    "confirmed": "CONFIRMED",
    "tentative": "TENTATIVE",
    "cancelled": "CANCELLED",
}

ROLE_MAP = {
    "required": "REQ-PARTICIPANT",
    "optional": "OPT-PARTICIPANT",
    "chair": "CHAIR",
    "non_participant": "NON-PARTICIPANT",
}

PARTSTAT_MAP = {
    "needs_action": "NEEDS-ACTION",
    "accepted": "ACCEPTED",
    "declined": "DECLINED",
    "tentative": "TENTATIVE",
}


logger = logging.getLogger(__name__)


class MissingProperty(Exception):
    def __init__(self, property_name) -> None:
        super().__init__(f"Property {property_name!r} missing")
        self.property_name = property_name


def _is_date(dt) -> bool:
    return isinstance(dt, date) and not isinstance(dt, datetime)


class ICalEventRecord:
    """A VEVENT as read from an iCalendar document.

    ``dtstart`` and ``dtend`` are dates for date-only values and datetimes
    otherwise. ``rrule`` holds the raw RRULE value.
    """

    def __init__(
        self,
        uid: str,
        summary: str,
        dtstart,
        dtend,
        description: Optional[str] = None,
        location: Optional[str] = None,
        rrule: Optional[str] = None,
        status: Optional[str] = None,
        categories=None,
        exdates=None,
    ) -> None:
        self.uid = uid
        self.summary = summary
        self.dtstart = dtstart
        self.dtend = dtend
        self.description = description
        self.location = location
        self.rrule = rrule
        self.status = status
        self.categories = list(categories or [])
        self.exdates = list(exdates or [])

    @property
    def all_day(self) -> bool:
        return _is_date(self.dtstart)

    @property
    def recurrence(self):
        if not self.rrule:
            return None
        return parse_rrule(self.rrule)

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, {!r}, {!r})".format(
            self.__class__.__name__, self.uid, self.summary, self.dtstart, self.dtend
        )


def _get_text(comp, name: str) -> Optional[str]:
    value = comp.get(name)
    if isinstance(value, list):
        value = value[0]
    if value is None or isinstance(value, vBroken):
        return None
    return str(value)


def _get_required_text(comp, name: str) -> str:
    value = _get_text(comp, name)
    if value is None:
        raise MissingProperty(name)
    return value


def _get_date(comp, name: str):
    prop = comp.get(name)
    if isinstance(prop, list):
        prop = prop[0]
    if prop is None or isinstance(prop, vBroken):
        raise MissingProperty(name)
    dt = getattr(prop, "dt", None)
    if not isinstance(dt, date):
        raise MissingProperty(name)
    return dt


def _get_categories(comp) -> list[str]:
    value = comp.get("CATEGORIES")
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    ret = []
    for prop in value:
        if isinstance(prop, vCategory):
            ret.extend(str(cat) for cat in prop.cats)
    return ret


def _get_exdates(comp) -> list:
    value = comp.get("EXDATE")
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [ddd.dt for prop in value for ddd in getattr(prop, "dts", [])]


def record_from_component(comp) -> ICalEventRecord:
    """Extract an event record from a VEVENT component.

    Raises:
      MissingProperty: if a required property is absent or unreadable
    """
    rrule = comp.get("RRULE")
    if isinstance(rrule, list):
        rrule = rrule[0]
    if rrule is not None:
        rrule = rrule.to_ical().decode("utf-8")
    return ICalEventRecord(
        uid=_get_required_text(comp, "UID"),
        summary=_get_required_text(comp, "SUMMARY"),
        dtstart=_get_date(comp, "DTSTART"),
        dtend=_get_date(comp, "DTEND"),
        description=_get_text(comp, "DESCRIPTION"),
        location=_get_text(comp, "LOCATION"),
        rrule=rrule,
        status=_get_text(comp, "STATUS"),
        categories=_get_categories(comp),
        exdates=_get_exdates(comp),
    )


def parse_ical(text: Union[str, bytes]) -> list[ICalEventRecord]:
    """Parse an iCalendar document into event records.

    Events lacking a UID, SUMMARY, DTSTART or DTEND are skipped. A document
    that can not be parsed at all yields no records.
    """
    if not text or not text.strip():
        return []
    try:
        components = VCalendar.from_ical(text, multiple=True)
    except ValueError as e:
        logger.warning("Unable to parse calendar: %s", e)
        return []
    records = []
    for component in components:
        for vevent in component.walk("VEVENT"):
            try:
                records.append(record_from_component(vevent))
            except MissingProperty as e:
                logger.debug("Skipping event %r: %s", vevent.get("UID"), e)
    return records


class vTrigger(vDuration):
    """Alarm trigger relative to the start of the event."""

    def to_ical(self):
        minutes = int(self.td.total_seconds() / 60)
        if minutes == 0:
            return b"PT0S"
        elif minutes < 0:
            return f"-PT{-minutes}M".encode("ascii")
        return f"PT{minutes}M".encode("ascii")


def _utc(dt: datetime) -> datetime:
    # Naive datetimes are interpreted as local time.
    return dt.astimezone(timezone.utc)


def _export_date(dt, all_day: bool):
    if all_day:
        if isinstance(dt, datetime):
            return dt.date()
        return dt
    if _is_date(dt):
        dt = datetime.combine(dt, time())
    return _utc(dt)


def _export_exdate(exdate, event: Event):
    # A date excludes the occurrence starting on that day.
    if not event.all_day and _is_date(exdate):
        exdate = datetime.combine(
            exdate, event.start.time(), tzinfo=event.start.tzinfo
        )
    return _export_date(exdate, event.all_day)


def _export_rule(rule, event: Event):
    """Prepare a rule for export next to the event's DTSTART.

    UNTIL has to match the value type of DTSTART, and be in UTC for
    date-time values.
    """
    until = rule.until
    if until is None or rule.count:
        return rule
    rule = copy.copy(rule)
    if event.all_day:
        if isinstance(until, datetime):
            until = until.date()
    else:
        if _is_date(until):
            until = datetime.combine(until, time.max)
        if until.tzinfo is None:
            # Expansion reads a floating UNTIL in the zone of DTSTART.
            until = until.replace(tzinfo=event.start.tzinfo)
        until = _utc(until).replace(microsecond=0)
    rule.until = until
    return rule


def _attendee_address(attendee, settings: EngineSettings) -> vCalAddress:
    email = attendee.email or f"{attendee.id}@{settings.get_attendee_domain()}"
    address = vCalAddress(f"mailto:{email}")
    address.params["ROLE"] = ROLE_MAP.get(attendee.role, "REQ-PARTICIPANT")
    address.params["PARTSTAT"] = PARTSTAT_MAP.get(
        attendee.response_status, "NEEDS-ACTION"
    )
    if attendee.name:
        address.params["CN"] = attendee.name
    return address


def _vevent_from_event(event: Event, now: datetime, settings: EngineSettings):
    vevent = VEvent()
    vevent.add("UID", f"{event.id}@{settings.get_uid_domain()}")
    vevent.add("DTSTAMP", _utc(now))
    vevent.add("CREATED", _utc(event.created_at or now))
    vevent.add("LAST-MODIFIED", _utc(event.updated_at or now))
    vevent.add("DTSTART", _export_date(event.start, event.all_day))
    vevent.add("DTEND", _export_date(event.end, event.all_day))
    vevent.add("SUMMARY", event.title)
    if event.description:
        vevent.add("DESCRIPTION", event.description)
    if event.location:
        vevent.add("LOCATION", event.location)
    vevent.add("STATUS", STATUS_MAP.get(event.status, "CONFIRMED"))
    vevent.add("TRANSP", "TRANSPARENT" if event.busy_status == "free" else "OPAQUE")
    if event.category:
        vevent.add("CATEGORIES", vCategory([event.category.upper()]))
    rule = event.recurrence
    if rule is not None:
        rrule = serialize_rrule(_export_rule(rule, event))
        vevent.add("RRULE", vRecur.from_ical(rrule))
        for exdate in rule.exdates:
            vevent.add("EXDATE", _export_exdate(exdate, event))
    for reminder in event.reminders:
        alarm = Alarm()
        alarm.add("ACTION", "DISPLAY")
        alarm.add("TRIGGER", vTrigger(timedelta(minutes=-reminder.minutes)))
        alarm.add("DESCRIPTION", "Event reminder")
        vevent.add_component(alarm)
    for attendee in event.attendees:
        vevent.add("ATTENDEE", _attendee_address(attendee, settings))
    return vevent


def generate_ical(
    calendar,
    events,
    now: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
) -> str:
    """Generate an iCalendar document for a calendar and its events.

    Args:
      calendar: Calendar the events belong to
      events: Events to export; recurring events are exported as masters
      now: Timestamp for DTSTAMP, defaults to the current time
      settings: EngineSettings with the export options
    Returns: iCalendar text, CRLF separated
    """
    if settings is None:
        settings = EngineSettings()
    if now is None:
        now = datetime.now(timezone.utc)
    cal = VCalendar()
    cal.add("VERSION", "2.0")
    cal.add("PRODID", settings.get_product_id())
    cal.add("CALSCALE", "GREGORIAN")
    cal.add("METHOD", "PUBLISH")
    cal.add("X-WR-CALNAME", calendar.name)
    if calendar.description:
        cal.add("X-WR-CALDESC", calendar.description)
    if calendar.timezone:
        cal.add("X-WR-TIMEZONE", calendar.timezone)
    for event in events:
        cal.add_component(_vevent_from_event(event, now, settings))
    return cal.to_ical(sorted=False).decode("utf-8")


DecodeResult = collections.namedtuple("DecodeResult", ["event", "error"])


def _decode_status(status: Optional[str]) -> str:
    if status is not None and status.lower() in EVENT_STATUSES:
        return status.lower()
    return "confirmed"


def _decode_category(categories) -> Optional[str]:
    if not categories:
        return None
    category = categories[0].lower()
    if category not in EVENT_CATEGORIES:
        logger.debug("Ignoring unknown category %r", categories[0])
        return None
    return category


def decode_record(record: ICalEventRecord, calendar_id: str) -> DecodeResult:
    """Convert an imported record into an event of a calendar.

    Returns: DecodeResult with either the event or a message describing why
      the record could not be used
    """
    start = record.dtstart
    end = record.dtend
    if _is_date(start) != _is_date(end):
        return DecodeResult(None, "DTSTART and DTEND have different value types")
    if record.all_day:
        start = datetime.combine(start, time())
        end = datetime.combine(end, time())
    elif (start.tzinfo is None) != (end.tzinfo is None):
        return DecodeResult(None, "DTSTART and DTEND mix floating and fixed times")
    if end < start:
        return DecodeResult(None, "DTEND is before DTSTART")
    recurrence = record.recurrence
    if recurrence is None and record.rrule:
        logger.debug("Ignoring unparseable RRULE %r of %r", record.rrule, record.uid)
    if recurrence is not None and record.exdates:
        recurrence.exdates = list(record.exdates)
    event = Event(
        id=f"{calendar_id}-{record.uid}",
        title=record.summary,
        start=start,
        end=end,
        all_day=record.all_day,
        recurrence=recurrence,
        timezone=getattr(start.tzinfo, "key", None),
        calendar_id=calendar_id,
        description=record.description,
        location=record.location,
        status=_decode_status(record.status),
        category=_decode_category(record.categories),
        external_id=record.uid,
    )
    return DecodeResult(event, None)


ImportResult = collections.namedtuple("ImportResult", ["events", "errors"])


def import_calendar(text: Union[str, bytes], calendar_id: str) -> ImportResult:
    """Import the events of an iCalendar document into a calendar.

    Returns: ImportResult with the decoded events and a list of
      ``(uid, message)`` tuples for the records that could not be imported
    """
    events = []
    errors = []
    for record in parse_ical(text):
        result = decode_record(record, calendar_id)
        if result.error is not None:
            logger.debug("Unable to import %r: %s", record.uid, result.error)
            errors.append((record.uid, result.error))
        else:
            events.append(result.event)
    return ImportResult(events, errors)
