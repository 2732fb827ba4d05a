#!/usr/bin/env python
"""
Time-range event queries (RFC4791, section 7.8).  One query is built
per sync window and sent as a calendar-query REPORT to every calendar.
"""
import logging
from datetime import datetime
from typing import List
from typing import TYPE_CHECKING

import icalendar
from lxml import etree

from callimachus.elements import cdav
from callimachus.elements import dav
from callimachus.lib import error

if TYPE_CHECKING:
    from callimachus.davclient import DAVClient

log = logging.getLogger("callimachus.search")

EVENT_COMPONENT = "VEVENT"


class EventRangeQuery:
    """
    A calendar-query REPORT body asking for all VEVENTs overlapping the
    window between start and end.  Timestamps are sent in UTC; naive
    datetimes are taken to be UTC already.
    """

    def __init__(self, start: datetime, end: datetime) -> None:
        if start is None or end is None:
            raise ValueError("both start and end are needed for a range query")
        if _utc_stamp(end) < _utc_stamp(start):
            raise ValueError("end %s is before start %s" % (end, start))
        self.start = start
        self.end = end

    def xmlelement(self) -> etree._Element:
        prop = dav.Prop() + [dav.GetEtag(), cdav.CalendarData()]
        vevent = cdav.CompFilter(EVENT_COMPONENT) + cdav.TimeRange(self.start, self.end)
        vcalendar = cdav.CompFilter("VCALENDAR") + vevent
        root = cdav.CalendarQuery() + [prop, cdav.Filter() + vcalendar]
        return root.xmlelement()

    def to_xml(self) -> bytes:
        return etree.tostring(
            self.xmlelement(), encoding="utf-8", xml_declaration=True
        )


def _utc_stamp(ts: datetime) -> str:
    return cdav._to_utc_date_string(ts)


def query_events(
    client: "DAVClient", url: str, query: EventRangeQuery
) -> List[icalendar.Event]:
    """
    Sends the query to the calendar at url and returns the VEVENT
    components found, in the order the server delivered them.

    Raises QueryFailure if the server refuses the query or returns
    calendar data that can't be parsed.  Exceptions from the transport
    are passed on as they are.
    """
    response = client.report(url, query.to_xml(), depth=1)
    response.raise_for_status("report")
    results = response.expand_simple_props([cdav.CalendarData()])

    events: List[icalendar.Event] = []
    for href, props in results.items():
        data = props.get(cdav.CalendarData.tag)
        ## some servers return the calendar collection itself in the
        ## result set, without any calendar data
        if not data:
            log.debug("no calendar data for %s, skipping", href)
            continue
        try:
            ical = icalendar.Calendar.from_ical(data)
        except ValueError as e:
            raise error.QueryFailure(
                url, "could not parse calendar data for %s: %s" % (href, e)
            )
        events.extend(ical.walk(EVENT_COMPONENT))
    return events
