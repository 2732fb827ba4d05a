#!/usr/bin/env python
"""
Locates the calendar home of the authenticated user.

Proper service discovery is described in RFC 6764 (DNS SRV/TXT
records and well-known URIs).  We do something simpler: a fixed list
of candidate paths on the given host is probed, one by one, with two
chained PROPFIND requests:

1. ``current-user-principal`` at the candidate path gives the principal URL
2. ``calendar-home-set`` at the principal URL gives the calendar home

The first candidate where both steps succeed wins.  If all of them
fail, every failure is reported in one DiscoveryExhausted error.

See: https://datatracker.ietf.org/doc/html/rfc6764
"""
import logging
from typing import List
from typing import Optional
from typing import Sequence
from urllib.parse import quote

import requests
from lxml import etree

from callimachus.collection import CalendarClient
from callimachus.davclient import DAVClient
from callimachus.elements import cdav
from callimachus.elements import dav
from callimachus.elements.base import BaseElement
from callimachus.lib import error
from callimachus.lib.url import unescape_href
from callimachus.lib.url import URL

log = logging.getLogger("callimachus.discovery")

## tried in this order, the root first, the well-known URI last
CANDIDATE_PATHS = ("", "/caldav", "/caldav/st", "/.well-known/caldav")


class ServerDiscoverer:
    """
    Probes the candidate paths on ``https://<host>`` through the given
    DAVClient.  The client should carry the account credentials already.
    """

    def __init__(
        self,
        host: str,
        client: DAVClient,
        paths: Sequence[str] = CANDIDATE_PATHS,
    ) -> None:
        self.host = host
        self.client = client
        self.paths = tuple(paths)
        self.base_url = URL.objectify("https://" + host)

    def discover(self) -> CalendarClient:
        """
        Returns a CalendarClient bound to the calendar home found
        through the first successful candidate path.

        Raises:
          DiscoveryExhausted: when none of the candidates worked.  The
            error holds one attempt per candidate, in candidate order.
        """
        attempts: List[error.DiscoveryAttempt] = []
        for index, path in enumerate(self.paths):
            try:
                calendar_home_set = self.find_calendar_home_set(path)
            except (error.DAVError, requests.RequestException, etree.XMLSyntaxError) as e:
                log.info("discovery at %s%s failed: %s", self.base_url, path, e)
                attempts.append(error.DiscoveryAttempt(index, path, e))
                continue
            log.debug(
                "discovered calendar home %s at %s%s",
                calendar_home_set,
                self.base_url,
                path,
            )
            return CalendarClient(
                self.client, calendar_home_set, email_address=self.client.username
            )

        exhausted = error.DiscoveryExhausted(url=str(self.base_url), attempts=attempts)
        log.error(str(exhausted))
        raise exhausted

    def find_calendar_home_set(self, path: str) -> str:
        principal = self._find_href(path, dav.CurrentUserPrincipal())
        return self._local_path(self._find_href(principal, cdav.CalendarHomeSet()))

    def _local_path(self, href: str) -> str:
        """
        Reduces an absolute URL from the server to its path.  The
        authenticated client is bound to one host, so a reference to
        another host is malformed.
        """
        if "://" not in href:
            return href
        url = URL(href)
        if url.hostname and url.hostname != self.base_url.hostname:
            raise error.MalformedReference(href, "reference to another host")
        return url.path

    def _find_href(self, path: str, prop: BaseElement) -> str:
        """
        Sends a depth-0 PROPFIND for prop to path and returns the
        unescaped href inside the property in the response.
        """
        ## paths are kept unescaped, they need to be quoted on the wire
        url = self.base_url.join(quote(self._local_path(path)))
        body = etree.tostring(
            (dav.Propfind() + (dav.Prop() + prop)).xmlelement(),
            encoding="utf-8",
            xml_declaration=True,
        )
        response = self.client.propfind(str(url), body, depth=0)
        response.raise_for_status("propfind")
        href = self._first_href(response, prop.tag)
        if href is None:
            raise error.MalformedReference(
                str(url), "no %s in the response" % prop.tag
            )
        return unescape_href(href)

    @staticmethod
    def _first_href(response, proptag: str) -> Optional[str]:
        ## the first response carrying the prop is the one we asked for
        for found in response.find_objects_and_props().values():
            if proptag in found:
                href = found[proptag].find(dav.Href.tag)
                if href is not None and href.text:
                    return href.text
        return None
