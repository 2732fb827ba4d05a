#!/usr/bin/env python
"""
A CalendarClient is bound to the calendar home of one account.  It
can list the event calendars found in the calendar home, and fetch
the events of all those calendars within a time window.

Everything here is synchronous; calendars are queried one by one, in
the order the server listed them, and the first failing calendar
aborts the whole call.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import List
from typing import Optional
from urllib.parse import quote

import icalendar
from lxml import etree

from callimachus.calendar import CalendarClientBase
from callimachus.calendar import NormalizedEvent
from callimachus.davclient import DAVClient
from callimachus.elements import cdav
from callimachus.elements import dav
from callimachus.event import map_event
from callimachus.lib.url import URL
from callimachus.search import EVENT_COMPONENT
from callimachus.search import EventRangeQuery
from callimachus.search import query_events

log = logging.getLogger("callimachus")


@dataclass(frozen=True)
class CalendarListEntry:
    path: str
    owner_email_address: str
    display_name: str = ""
    time_zone_id: str = ""


def extract_time_zone_id(timezone_prop: Optional[etree._Element]) -> str:
    """
    The calendar-timezone property carries a VCALENDAR object with one
    VTIMEZONE in it.  Returns its TZID, or an empty string if there is
    none to be found.
    """
    if timezone_prop is None or not timezone_prop.text:
        return ""
    try:
        ical = icalendar.Calendar.from_ical(timezone_prop.text)
    except ValueError:
        log.warning("unparsable calendar-timezone: %s", timezone_prop.text)
        return ""
    for vtimezone in ical.walk("VTIMEZONE"):
        tzid = vtimezone.get("TZID")
        if tzid:
            return str(tzid)
    return ""


class CalendarClient(CalendarClientBase):
    """
    Use get_calendar_client() to get hold of one of these, that will
    do the server discovery.  The client is not modified after it has
    been constructed, so it may be reused for any number of calls.
    """

    def __init__(self, client: DAVClient, path: str, email_address: str) -> None:
        self._client = client
        self._path = path
        self._email_address = email_address

    @property
    def client(self) -> DAVClient:
        return self._client

    @property
    def path(self) -> str:
        """The (unescaped) path of the calendar home"""
        return self._path

    @property
    def email_address(self) -> str:
        return self._email_address

    def __repr__(self) -> str:
        return "CalendarClient(%s%s)" % (self._client.url, self._path)

    def __enter__(self) -> "CalendarClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[BaseException] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def url(self, path: str) -> URL:
        ## paths are kept unescaped, they need to be quoted on the wire
        return self._client.url.join(quote(path))

    def calendars(self) -> List[CalendarListEntry]:
        """
        Lists the calendars in the calendar home that can hold events.
        Collections only supporting todos or journals are skipped, as
        are the ones the server reports a failure status for.

        Returns:
          [CalendarListEntry(), ...] in the order the server listed them
        """
        props = [
            dav.DisplayName(),
            cdav.CalendarTimeZone(),
            cdav.SupportedCalendarComponentSet(),
        ]
        body = etree.tostring(
            (dav.Propfind() + (dav.Prop() + props)).xmlelement(),
            encoding="utf-8",
            xml_declaration=True,
        )
        response = self._client.propfind(str(self.url(self._path)), body, depth=1)
        response.raise_for_status("propfind")
        objects = response.find_objects_and_props()

        calendars = []
        for href, found in objects.items():
            if not response.is_ok(href):
                continue
            supported = found.get(cdav.SupportedCalendarComponentSet.tag)
            if supported is None:
                continue
            if EVENT_COMPONENT not in [comp.get("name") for comp in supported]:
                continue
            display_name = found.get(dav.DisplayName.tag)
            if display_name is not None:
                display_name = display_name.text
            calendars.append(
                CalendarListEntry(
                    path=href,
                    owner_email_address=self._email_address,
                    display_name=display_name or "",
                    time_zone_id=extract_time_zone_id(
                        found.get(cdav.CalendarTimeZone.tag)
                    ),
                )
            )
        log.debug("found %i event calendars under %s", len(calendars), self._path)
        return calendars

    def calendar_events(
        self, start_utc: datetime, end_utc: datetime
    ) -> List[NormalizedEvent]:
        """
        Fetches the events overlapping the window from all the event
        calendars of the account.

        Args:
          start_utc: start of the window, inclusive
          end_utc: end of the window, inclusive

        Returns:
          [NormalizedEvent(), ...], ordered by calendar, then by the
          order the server returned the events in
        """
        query = EventRangeQuery(start_utc, end_utc)
        calendar_items = []
        for calendar in self.calendars():
            events = query_events(self._client, str(self.url(calendar.path)), query)
            for event in events:
                calendar_items.append(map_event(event, calendar))
        return calendar_items
