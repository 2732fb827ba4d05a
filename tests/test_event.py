#!/usr/bin/env python
"""
Tests for mapping raw VEVENTs into NormalizedEvent objects.
"""
from datetime import datetime
from datetime import timedelta
from datetime import timezone

import icalendar
from fixture_helpers import event_data

from callimachus.calendar import Attendee
from callimachus.calendar import EmailAddress
from callimachus.calendar import Importance
from callimachus.calendar import ResponseType
from callimachus.calendar import Sensitivity
from callimachus.calendar import ZERO_TIME
from callimachus.collection import CalendarListEntry
from callimachus.event import is_all_day
from callimachus.event import map_event
from callimachus.event import to_datetime
from callimachus.event import unsafe_to_string

utc = timezone.utc

calendar = CalendarListEntry(
    path="/calendars/bob@example.org/work/",
    owner_email_address="bob@example.org",
    display_name="Work",
    time_zone_id="Europe/Oslo",
)

ev_minimal = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example Corp.//CalDAV Client//EN
BEGIN:VEVENT
UID:minimal
DTSTAMP:20060712T182145Z
END:VEVENT
END:VCALENDAR
"""

ev_all_day = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example Corp.//CalDAV Client//EN
BEGIN:VEVENT
UID:holiday
DTSTAMP:20060712T182145Z
DTSTART;VALUE=DATE:20060714
DTEND;VALUE=DATE:20060715
SUMMARY:Bastille Day
END:VEVENT
END:VCALENDAR
"""

ev_oslo = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example Corp.//CalDAV Client//EN
BEGIN:VTIMEZONE
TZID:Europe/Oslo
BEGIN:STANDARD
DTSTART:19701025T030000
TZOFFSETFROM:+0200
TZOFFSETTO:+0100
RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU
END:STANDARD
BEGIN:DAYLIGHT
DTSTART:19700329T020000
TZOFFSETFROM:+0100
TZOFFSETTO:+0200
RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU
END:DAYLIGHT
END:VTIMEZONE
BEGIN:VEVENT
UID:oslo
DTSTAMP:20060712T182145Z
DTSTART;TZID=Europe/Oslo:20060714T020000
DURATION:PT1H
SUMMARY:Early
END:VEVENT
END:VCALENDAR
"""


def parse(data: str) -> icalendar.Event:
    return icalendar.Calendar.from_ical(data).walk("VEVENT")[0]


def mapped(uid: str = "abc", extra: str = "", **kwargs):
    return map_event(parse(event_data(uid, extra=extra, **kwargs)), calendar)


class TestMapEvent:
    def test_basic_fields(self):
        event = mapped(
            "abc",
            extra=(
                "DESCRIPTION:Quarterly numbers\n"
                "LOCATION:Room 101\n"
                "URL:https://example.org/meeting\n"
            ),
            summary="Review",
        )
        assert event.uid == "abc"
        assert event.calendar_item_id == "abc"
        assert event.subject == "Review"
        assert event.description == "Quarterly numbers"
        assert event.location == "Room 101"
        assert event.url == "https://example.org/meeting"
        assert event.start == datetime(2006, 7, 14, 17, 0, tzinfo=utc)
        assert event.end == datetime(2006, 7, 15, 4, 0, tzinfo=utc)
        assert event.time_zone == "Europe/Oslo"
        assert event.calendar_id == "/calendars/bob@example.org/work/"
        assert event.calendar_display_name == "Work"
        assert event.importance == Importance.UNKNOWN
        assert not event.is_all_day
        assert not event.is_recurring

    def test_missing_optional_fields(self):
        event = map_event(parse(ev_minimal), calendar)
        assert event.subject == ""
        assert event.description == ""
        assert event.url == ""
        assert event.location == ""
        assert event.organizer is None
        assert event.attendees == []
        assert event.response_type == ResponseType.UNKNOWN
        assert event.sensitivity == Sensitivity.NORMAL
        assert event.start == ZERO_TIME
        assert event.end == ZERO_TIME
        ## neither DTSTART nor DTEND, both sit on the zero time
        assert event.is_all_day

    def test_date_only_is_not_all_day(self):
        event = map_event(parse(ev_all_day), calendar)
        assert event.start == datetime(2006, 7, 14, tzinfo=utc)
        assert event.end == datetime(2006, 7, 15, tzinfo=utc)
        ## dated midnight values are not the zero time
        assert not event.is_all_day

    def test_duration_and_time_zone(self):
        event = map_event(parse(ev_oslo), calendar)
        ## 02:00 in Oslo, summer time
        assert event.start == datetime(2006, 7, 14, 0, 0, tzinfo=utc)
        assert event.end == datetime(2006, 7, 14, 1, 0, tzinfo=utc)
        assert event.start.tzinfo is not None
        assert not event.is_all_day

    def test_created_and_last_modified(self):
        ## DTSTAMP is not a creation time
        event = mapped()
        assert event.created_at == ZERO_TIME
        assert event.last_modified_at == ZERO_TIME

        event = mapped(extra="CREATED:20060701T100000Z\n")
        assert event.created_at == datetime(2006, 7, 1, 10, 0, tzinfo=utc)
        assert event.last_modified_at == event.created_at

        event = mapped(
            extra="CREATED:20060701T100000Z\nLAST-MODIFIED:20060710T120000Z\n"
        )
        assert event.created_at == datetime(2006, 7, 1, 10, 0, tzinfo=utc)
        assert event.last_modified_at == datetime(2006, 7, 10, 12, 0, tzinfo=utc)

    def test_recurring(self):
        assert mapped(extra="RRULE:FREQ=WEEKLY;COUNT=4\n").is_recurring
        assert mapped(extra="RDATE:20060801T170000Z\n").is_recurring
        assert mapped(extra="RECURRENCE-ID:20060714T170000Z\n").is_recurring

    def test_sensitivity(self):
        assert mapped(extra="CLASS:PRIVATE\n").sensitivity == Sensitivity.PRIVATE
        assert (
            mapped(extra="CLASS:CONFIDENTIAL\n").sensitivity
            == Sensitivity.CONFIDENTIAL
        )
        assert mapped(extra="CLASS:PUBLIC\n").sensitivity == Sensitivity.NORMAL
        assert mapped(extra="CLASS:X-SECRET\n").sensitivity == Sensitivity.UNKNOWN


class TestParticipants:
    def test_organizer_is_owner_without_attendees(self):
        event = mapped(extra="ORGANIZER;CN=Bob:mailto:bob@example.org\n")
        assert event.organizer == EmailAddress(name="Bob", address="bob@example.org")
        assert event.attendees == []
        assert event.response_type == ResponseType.UNKNOWN

    def test_organizer_without_name(self):
        event = mapped(extra="ORGANIZER:mailto:alice@example.org\n")
        assert event.organizer == EmailAddress(name="", address="alice@example.org")

    def test_attendees_in_order(self):
        event = mapped(
            extra=(
                "ORGANIZER;CN=Alice:mailto:alice@example.org\n"
                "ATTENDEE;PARTSTAT=DECLINED;CN=Carol:mailto:carol@example.org\n"
                "ATTENDEE;PARTSTAT=TENTATIVE;CN=Bob:mailto:bob@example.org\n"
                "ATTENDEE:mailto:dave@example.org\n"
            )
        )
        assert event.attendees == [
            Attendee(
                EmailAddress("Carol", "carol@example.org"), ResponseType.DECLINED
            ),
            Attendee(EmailAddress("Bob", "bob@example.org"), ResponseType.TENTATIVE),
            Attendee(EmailAddress("", "dave@example.org"), ResponseType.UNKNOWN),
        ]
        assert event.response_type == ResponseType.TENTATIVE

    def test_single_attendee(self):
        event = mapped(
            extra="ATTENDEE;PARTSTAT=NEEDS-ACTION:mailto:bob@example.org\n"
        )
        assert event.response_type == ResponseType.NOT_RESPONDED

    def test_owner_must_match_exactly(self):
        event = mapped(
            extra="ATTENDEE;PARTSTAT=ACCEPTED:mailto:robert@example.org\n"
        )
        assert event.response_type == ResponseType.UNKNOWN


class TestHelpers:
    def test_is_all_day(self):
        assert is_all_day(ZERO_TIME, ZERO_TIME)
        ## the time is truncated to whole seconds
        assert is_all_day(ZERO_TIME + timedelta(microseconds=999), ZERO_TIME)
        assert not is_all_day(ZERO_TIME + timedelta(seconds=1), ZERO_TIME)
        midnight = datetime(2024, 3, 10, tzinfo=utc)
        assert not is_all_day(midnight, midnight + timedelta(days=1))
        assert not is_all_day(ZERO_TIME, midnight)
        assert not is_all_day(midnight, ZERO_TIME)

    def test_to_datetime(self):
        assert to_datetime(None) == ZERO_TIME
        assert to_datetime(datetime(2006, 7, 14, 17, 0)) == datetime(
            2006, 7, 14, 17, 0, tzinfo=utc
        )
        oslo = timezone(timedelta(hours=2))
        assert to_datetime(datetime(2006, 7, 14, 19, 0, tzinfo=oslo)) == datetime(
            2006, 7, 14, 17, 0, tzinfo=utc
        )

    def test_unsafe_to_string(self):
        assert unsafe_to_string(None) == ""
        assert unsafe_to_string([]) == ""
        assert unsafe_to_string("x") == "x"
        assert unsafe_to_string(["a", "b"]) == "a"
        assert unsafe_to_string(object()) == ""
