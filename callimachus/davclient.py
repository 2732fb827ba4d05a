#!/usr/bin/env python
"""
The ``DAVClient`` class handles the basic communication with a
CalDAV server: it owns the requests session, the authenticated
transport and the timeout, and knows how to send PROPFIND and REPORT
requests.

The ``DAVResponse`` class handles the data returned from the server.
Since we mostly get XML responses, it tries to parse it into
`self.tree` and offers helpers for picking the multistatus apart.

``get_calendar_client`` runs the full server discovery and returns a
``CalendarClient`` bound to the user's calendar home.
"""
import logging
import os
import sys
from types import TracebackType
from typing import Any
from typing import cast
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import TYPE_CHECKING
from typing import Union

import requests
from lxml import etree
from lxml.etree import _Element
from requests.auth import AuthBase
from requests.models import Response
from requests.structures import CaseInsensitiveDict

from callimachus import __version__
from callimachus.elements import dav
from callimachus.elements.base import BaseElement
from callimachus.lib import error
from callimachus.lib.python_utilities import to_normal_str
from callimachus.lib.python_utilities import to_wire
from callimachus.lib.url import unescape_href
from callimachus.lib.url import URL
from callimachus.transport import AuthenticatedTransport

if TYPE_CHECKING:
    from callimachus.collection import CalendarClient

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

log = logging.getLogger("callimachus")

DEFAULT_TIMEOUT = 60

## keys accepted by get_calendar_client
CONNKEYS = set(
    (
        "host",
        "username",
        "password",
        "timeout",
        "ssl_verify_cert",
    )
)


class DAVResponse:
    """
    A response from a DAV request.  If the body is XML it's parsed into
    `self.tree`, a multistatus body can then be picked apart with
    find_objects_and_props().
    """

    reason: str = ""
    tree: Optional[_Element] = None
    status: int = 0
    url: Optional[str] = None

    def __init__(self, response: Response, url: Optional[str] = None) -> None:
        self.headers: CaseInsensitiveDict = response.headers
        self.status = response.status_code
        self.url = url
        ## incidents with a response without a reason has been observed
        self.reason = getattr(response, "reason", "") or ""
        log.debug("response status: %s, headers: %s", self.status, self.headers)

        content_type = self.headers.get("Content-Type", "")
        expect_xml = content_type.startswith(("text/xml", "application/xml"))

        self._raw = response.content or b""
        if not self._raw:
            log.debug("No content delivered")
            return
        try:
            ## Some servers send XML without saying so, the content
            ## type is only trusted when it promises XML.
            self.tree = etree.XML(
                self._raw, parser=etree.XMLParser(remove_blank_text=True)
            )
        except etree.XMLSyntaxError:
            if expect_xml:
                log.critical(
                    "Expected some valid XML from the server, but got this: \n%s",
                    self._raw,
                    exc_info=True,
                )
                raise
            log.debug("Non-XML content delivered: %s", self._raw)
        else:
            if log.isEnabledFor(logging.DEBUG):
                log.debug(etree.tostring(self.tree, pretty_print=True))

    @property
    def raw(self) -> str:
        return to_normal_str(self._raw)

    def raise_for_status(self, method: str) -> "DAVResponse":
        """
        Raises the error class registered for the method if the server
        did not answer with a 2xx/207.  A 404 on a PROPFIND is reported
        as NotFoundError.
        """
        if self.status == 404 and method == "propfind":
            raise error.NotFoundError(self.url, error.errmsg(self))
        if self.status >= 400:
            raise error.exception_by_method[method](self.url, error.errmsg(self))
        return self

    def _responses(self) -> List[_Element]:
        ## a multistatus, or a lonely response element
        if self.tree is None:
            return []
        if self.tree.tag == dav.MultiStatus.tag:
            return list(self.tree)
        return [self.tree]

    def _request_path(self) -> str:
        if not self.url:
            return "/"
        return URL.objectify(self.url).path or "/"

    def _parse_response(
        self, response: _Element
    ) -> Tuple[str, List[_Element], Optional[str]]:
        """
        Returns the href, the propstats and the response level status
        of one response element.  A failing status is recorded, not
        raised; it's up to is_ok() to leave the item out.
        """
        status = None
        href: Optional[str] = None
        propstats: List[_Element] = []
        for elem in response:
            if elem.tag == dav.Status.tag:
                error.assert_(not status)
                status = elem.text
            elif elem.tag == dav.Href.tag:
                error.assert_(href is None)
                href = (elem.text or "").strip()
            elif elem.tag == dav.PropStat.tag:
                propstats.append(elem)
            else:
                error.weirdness("unexpected element found in response", elem)

        if not href:
            ## an empty href refers to the resource that was asked for
            href = self._request_path()
        else:
            # Confluence server quotes the user email twice.
            href = unescape_href(href.replace("%2540", "%40"))
        ## absolute URLs are reduced to their path
        if "://" in href:
            href = URL(href).path
        return (href, propstats, status)

    def find_objects_and_props(self) -> Dict[str, Dict[str, _Element]]:
        """
        Parses the multistatus into self.objects, a dict {href:
        {proptag: prop_element}} in the order the server delivered
        them.  Only props from propstats with a 200 status are kept.
        The response level status of every href goes to self.statuses,
        the propstat statuses to self.propstat_statuses.
        """
        self.objects: Dict[str, Dict[str, _Element]] = {}
        self.statuses: Dict[str, Optional[str]] = {}
        self.propstat_statuses: Dict[str, List[str]] = {}

        for r in self._responses():
            if r.tag != dav.Response.tag:
                error.weirdness("expected a response element", r)
                continue
            (href, propstats, status) = self._parse_response(r)
            found = self.objects.setdefault(href, {})
            self.statuses.setdefault(href, status)
            statuses = self.propstat_statuses.setdefault(href, [])

            ## The properties may be delivered either in one
            ## propstat with multiple props or in multiple
            ## propstat
            for propstat in propstats:
                propstat_status = propstat.find(dav.Status.tag)
                if propstat_status is None or not propstat_status.text:
                    error.weirdness("propstat without status", propstat)
                    continue
                statuses.append(propstat_status.text)
                if " 200 " not in propstat_status.text:
                    continue
                for prop in propstat.iterfind(dav.Prop.tag):
                    for theprop in prop:
                        found[theprop.tag] = theprop

        return self.objects

    def is_ok(self, href: str) -> bool:
        """
        True if the server delivered a 200 propstat for href, and
        no failing status on the response level.
        """
        status = self.statuses.get(href)
        if status and " 200 " not in status and " 207 " not in status:
            return False
        return any(" 200 " in s for s in self.propstat_statuses.get(href, []))

    def expand_simple_props(
        self, props: Iterable[BaseElement]
    ) -> Dict[str, Dict[str, Optional[str]]]:
        """
        Replaces the prop elements found by find_objects_and_props()
        with their text content, None for props that were not
        delivered.
        """
        if not hasattr(self, "objects"):
            self.find_objects_and_props()
        for props_found in self.objects.values():
            for prop in props:
                elem = props_found.get(prop.tag)
                props_found[prop.tag] = elem.text if elem is not None else None
        # _Element objects in self.objects are replaced by str, thus the cast
        return cast(Dict[str, Dict[str, Optional[str]]], self.objects)


class DAVClient:
    """
    Basic client for webdav, uses the requests lib; gives access to
    low-level operations towards the caldav server.

    The client does no discovery by itself, see get_calendar_client
    for that.
    """

    url: URL = None

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        auth: Optional[AuthBase] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        ssl_verify_cert: Union[bool, str] = True,
    ) -> None:
        """
        Sets up a requests session towards the server in the url.

        Args:
          url: A fully qualified url: `scheme://hostname:port`
          username, password: wrapped into an AuthenticatedTransport, unless
            auth is given
          auth: A requests.auth.AuthBase object, may be passed instead of username/password.
          timeout: passed to requests.request, this is the deadline for every request
          ssl_verify_cert can be the path of a CA-bundle or False.
        """
        self.session = requests.Session()

        log.debug("url: " + str(url))
        self.url = URL.objectify(url).unauth()

        self.headers = CaseInsensitiveDict(
            {
                "User-Agent": "callimachus/" + __version__,
                "Content-Type": "text/xml",
                "Accept": "text/xml, text/calendar",
            }
        )

        self.username = username
        if auth is None and username is not None:
            auth = AuthenticatedTransport(username, password or "")
        self.auth = auth

        self.timeout = timeout
        self.ssl_verify_cert = ssl_verify_cert

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[BaseException] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """
        Closes the DAVClient's session object
        """
        self.session.close()

    def propfind(
        self, url: Optional[str] = None, props: str = "", depth: int = 0
    ) -> DAVResponse:
        """
        Send a propfind request.

        Args:
            url: url for the root of the propfind.
            props: XML request, the properties we want
            depth: maximum recursion depth

        Returns
            DAVResponse
        """
        return self.request(
            url or str(self.url), "PROPFIND", props, {"Depth": str(depth)}
        )

    def report(self, url: str, query: str = "", depth: int = 0) -> DAVResponse:
        """
        Send a report request.

        Args:
            url: url for the root of the report.
            query: XML request
            depth: maximum recursion depth

        Returns
            DAVResponse
        """
        return self.request(
            url,
            "REPORT",
            query,
            {"Depth": str(depth), "Content-Type": 'application/xml; charset="utf-8"'},
        )

    def request(
        self,
        url: str,
        method: str,
        body: str = "",
        headers: Mapping[str, str] = None,
    ) -> DAVResponse:
        """
        Actually sends the request.  Exceptions from requests are
        passed on untouched, a 401 or 403 is raised as an
        AuthorizationError.
        """
        combined_headers = self.headers.copy()
        combined_headers.update(headers or {})
        if not body and "Content-Type" in combined_headers:
            del combined_headers["Content-Type"]

        url = str(URL.objectify(url))
        log.debug(
            "sending request - method=%s, url=%s, headers=%s\nbody:\n%s",
            method,
            url,
            combined_headers,
            to_normal_str(body),
        )

        r = self.session.request(
            method,
            url,
            data=to_wire(body),
            headers=combined_headers,
            auth=self.auth,
            timeout=self.timeout,
            verify=self.ssl_verify_cert,
        )
        log.debug("server responded with %i %s", r.status_code, r.reason)
        response = DAVResponse(r, url=url)

        # this is an error condition that should be raised to the application
        if response.status in (requests.codes.forbidden, requests.codes.unauthorized):
            raise error.AuthorizationError(
                url=url, reason=response.reason or "None given"
            )

        return response


def get_calendar_client(
    host: str,
    username: str,
    password: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    ssl_verify_cert: Union[bool, str] = True,
) -> "CalendarClient":
    """
    Creates a new authenticated CalDAV client for one account.  Server
    discovery is done as a side effect, so this will communicate with
    the server, and raise DiscoveryExhausted if no calendar home could
    be found.

    Args:
      host: bare host name, like ``cal.example.org``
      username: the account name, also used as the account email address
      password: the account password
    """
    ## late import, discovery depends on this module
    from callimachus.discovery import ServerDiscoverer

    client = DAVClient(
        url="https://" + host,
        username=username,
        auth=AuthenticatedTransport(username, password),
        timeout=timeout,
        ssl_verify_cert=ssl_verify_cert,
    )
    return ServerDiscoverer(host, client).discover()


def get_client_from_config(
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> "CalendarClient":
    """
    This function will yield a CalendarClient object.  It will read
    configuration from various sources, dependent on the parameters
    given, in this order:

    * Data from the parameters given
    * Environment variables prepended with `CALDAV_`, like `CALDAV_HOST`,
      `CALDAV_USERNAME`, `CALDAV_PASSWORD`.  `CALDAV_CONFIG_FILE` and
      `CALDAV_CONFIG_SECTION` will be honored as well.
    * Configuration file, see callimachus.config
    """
    from callimachus import config

    conn_params: Dict[str, Any] = {}
    if config_data:
        conn_params = dict(config_data)
    elif environment:
        conn_params = config.from_environment(os.environ)
        if not config_file:
            config_file = os.environ.get("CALDAV_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("CALDAV_CONFIG_SECTION")

    if not conn_params:
        cfg = config.read_config(config_file)
        if cfg:
            section = config.config_section(cfg, config_section or "default")
            conn_params = config.connection_params(section)

    if not conn_params:
        raise error.DAVError(reason="no connection parameters found")
    unknown = set(conn_params) - CONNKEYS
    if unknown:
        log.warning(
            "ignoring unknown connection parameters: %s", ", ".join(sorted(unknown))
        )
        for key in unknown:
            del conn_params[key]
    if "timeout" in conn_params:
        conn_params["timeout"] = float(conn_params["timeout"])
    if isinstance(conn_params.get("ssl_verify_cert"), str):
        if conn_params["ssl_verify_cert"].lower() in ("0", "false", "no"):
            conn_params["ssl_verify_cert"] = False
        elif conn_params["ssl_verify_cert"].lower() in ("1", "true", "yes"):
            conn_params["ssl_verify_cert"] = True
    missing = set(("host", "username", "password")) - set(conn_params)
    if missing:
        raise error.DAVError(
            reason="missing connection parameters: %s" % ", ".join(sorted(missing))
        )
    return get_calendar_client(**conn_params)
