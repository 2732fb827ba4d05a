#!/usr/bin/env python
"""
Maps raw iCalendar VEVENT components, as parsed by the icalendar
library, into NormalizedEvent objects.

The mapping never fails.  Optional properties that are missing or
can't be decoded end up as empty strings, the zero time or None, and
the decoding problem is logged.
"""
import logging
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any
from typing import List
from typing import Optional
from typing import TYPE_CHECKING

import icalendar

from callimachus import convert
from callimachus.calendar import Attendee
from callimachus.calendar import EmailAddress
from callimachus.calendar import Importance
from callimachus.calendar import NormalizedEvent
from callimachus.calendar import ResponseType
from callimachus.calendar import ZERO_TIME

if TYPE_CHECKING:
    from callimachus.collection import CalendarListEntry

log = logging.getLogger("callimachus.event")

RECURRENCE_PROPERTIES = ("RRULE", "RDATE", "RECURRENCE-ID")


def map_event(
    event: icalendar.Event, calendar: "CalendarListEntry"
) -> NormalizedEvent:
    """
    Converts one raw event into a NormalizedEvent.

    Args:
      event: a VEVENT component
      calendar: the calendar the event was found in

    Returns:
      NormalizedEvent
    """
    attendees = resolve_attendees(event.get("ATTENDEE"))
    start = to_datetime(event.get("DTSTART"))
    end = resolve_end(event, start)
    created_at = to_datetime(event.get("CREATED"))
    last_modified = event.get("LAST-MODIFIED")
    uid = unsafe_to_string(event.get("UID"))

    return NormalizedEvent(
        uid=uid,
        subject=unsafe_to_string(event.get("SUMMARY")),
        description=unsafe_to_string(event.get("DESCRIPTION")),
        url=unsafe_to_string(event.get("URL")),
        start=start,
        end=end,
        time_zone=calendar.time_zone_id,
        location=unsafe_to_string(event.get("LOCATION")),
        response_type=find_response_type(calendar.owner_email_address, attendees),
        organizer=resolve_organizer(event.get("ORGANIZER")),
        attendees=attendees,
        is_recurring=any(p in event for p in RECURRENCE_PROPERTIES),
        is_all_day=is_all_day(start, end),
        importance=Importance.UNKNOWN,
        sensitivity=convert.classification_to_sensitivity(
            unsafe_to_string(event.get("CLASS"))
        ),
        created_at=created_at,
        last_modified_at=(
            to_datetime(last_modified) if last_modified is not None else created_at
        ),
        calendar_id=calendar.path,
        calendar_display_name=calendar.display_name,
        calendar_item_id=uid,
    )


def unsafe_to_string(value: Any) -> str:
    """
    Text of an optional property value.  None gives an empty string, so
    does a value that can't be encoded.
    """
    if value is None:
        return ""
    if isinstance(value, list):
        if not value:
            return ""
        value = value[0]
    if isinstance(value, str):
        return str(value)
    try:
        return value.to_ical().decode("utf-8")
    except (AttributeError, TypeError, ValueError) as e:
        log.warning("could not encode property value %r: %s", value, e)
        return ""


def to_datetime(value: Any) -> datetime:
    """
    Converts a DTSTART-style property into an aware UTC datetime.
    Dates are midnight UTC, floating times are taken as UTC, and a
    missing value is the zero time.
    """
    if value is None:
        return ZERO_TIME
    dt = getattr(value, "dt", value)
    if isinstance(dt, datetime):
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if isinstance(dt, date):
        return datetime(dt.year, dt.month, dt.day, tzinfo=timezone.utc)
    log.warning("unexpected timestamp value %r", value)
    return ZERO_TIME


def resolve_end(event: icalendar.Event, start: datetime) -> datetime:
    if event.get("DTEND") is not None:
        return to_datetime(event.get("DTEND"))
    duration = getattr(event.get("DURATION"), "dt", None)
    if isinstance(duration, timedelta) and start != ZERO_TIME:
        return start + duration
    return ZERO_TIME


def is_all_day(start: datetime, end: datetime) -> bool:
    """
    Both timestamps, truncated to whole seconds, equal the zero time.
    This is a heuristic; in practice it holds for events where neither
    DTSTART nor DTEND could be read.
    """
    return all(ts.replace(microsecond=0) == ZERO_TIME for ts in (start, end))


def new_email_address(address: Any) -> EmailAddress:
    params = getattr(address, "params", {}) or {}
    addr = str(address)
    if addr.lower().startswith("mailto:"):
        addr = addr[len("mailto:") :]
    return EmailAddress(name=str(params.get("CN", "")), address=addr)


def resolve_organizer(organizer: Any) -> Optional[EmailAddress]:
    ## an appointment has no organizer
    if organizer is None:
        return None
    if isinstance(organizer, list):
        if not organizer:
            return None
        organizer = organizer[0]
    return new_email_address(organizer)


def resolve_attendees(event_attendees: Any) -> List[Attendee]:
    if event_attendees is None:
        return []
    if not isinstance(event_attendees, list):
        event_attendees = [event_attendees]
    attendees = []
    for a in event_attendees:
        params = getattr(a, "params", {}) or {}
        attendees.append(
            Attendee(
                email_address=new_email_address(a),
                response_type=convert.participation_status_to_response_type(
                    params.get("PARTSTAT")
                ),
            )
        )
    return attendees


def find_response_type(email_address: str, attendees: List[Attendee]) -> ResponseType:
    for attendee in attendees:
        if attendee.email_address.address == email_address:
            return attendee.response_type
    return ResponseType.UNKNOWN
