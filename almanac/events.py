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

"""Calendars, events and expanded occurrences."""

import collections
from datetime import timedelta
from typing import Optional

EVENT_STATUSES = ("confirmed", "tentative", "cancelled")

BUSY_STATUSES = ("free", "busy", "tentative", "out_of_office")

EVENT_CATEGORIES = (
    "default",
    "birthday",
    "anniversary",
    "appointment",
    "meeting",
    "reminder",
    "task",
    "travel",
    "holiday",
    "family",
    "school",
    "medical",
    "sports",
    "social",
)

ATTENDEE_ROLES = ("required", "optional", "chair", "non_participant")

ATTENDEE_RESPONSES = ("needs_action", "accepted", "declined", "tentative")


# Minutes before the start of the event; 0 means at the start.
Reminder = collections.namedtuple("Reminder", ["minutes", "id"], defaults=[None])

Attendee = collections.namedtuple(
    "Attendee",
    ["id", "name", "email", "role", "response_status"],
    defaults=[None, "required", "needs_action"],
)


class Calendar:
    """A calendar that events belong to."""

    def __init__(
        self,
        id: str,
        name: str,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
        color: Optional[str] = None,
    ) -> None:
        self.id = id
        self.name = name
        self.description = description
        self.timezone = timezone
        self.color = color

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.id!r}, {self.name!r})"


class Event:
    """A stored event; the master of its occurrences if it recurs.

    ``start`` and ``end`` are datetimes. Naive datetimes are local wall-clock
    times. All-day events start and end at midnight, with ``end`` being the
    day after the last day of the event.
    """

    def __init__(
        self,
        id: str,
        title: str,
        start,
        end,
        all_day: bool = False,
        recurrence=None,
        timezone: Optional[str] = None,
        calendar_id: Optional[str] = None,
        description: Optional[str] = None,
        location: Optional[str] = None,
        status: str = "confirmed",
        busy_status: str = "busy",
        category: Optional[str] = None,
        reminders=None,
        attendees=None,
        external_id: Optional[str] = None,
        created_at=None,
        updated_at=None,
    ) -> None:
        self.id = id
        self.title = title
        self.start = start
        self.end = end
        self.all_day = all_day
        self.recurrence = recurrence
        self.timezone = timezone
        self.calendar_id = calendar_id
        self.description = description
        self.location = location
        self.status = status
        self.busy_status = busy_status
        self.category = category
        self.reminders = list(reminders or [])
        self.attendees = list(attendees or [])
        self.external_id = external_id
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, {!r}, {!r})".format(
            self.__class__.__name__, self.id, self.title, self.start, self.end
        )


class Occurrence:
    """A concrete instance of an event within a time range.

    Occurrences are derived on every expansion and never stored.
    """

    def __init__(
        self,
        id: str,
        start,
        end,
        event: Event,
        is_recurrence_instance: bool = False,
        master_event_id: Optional[str] = None,
    ) -> None:
        self.id = id
        self.start = start
        self.end = end
        self.event = event
        self.is_recurrence_instance = is_recurrence_instance
        self.master_event_id = master_event_id

    @property
    def title(self) -> str:
        return self.event.title

    @property
    def all_day(self) -> bool:
        return self.event.all_day

    def __repr__(self) -> str:
        return "{}({!r}, {!r}, {!r})".format(
            self.__class__.__name__, self.id, self.start, self.end
        )
