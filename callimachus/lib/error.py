#!/usr/bin/env python
import logging
import os
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from typing import Type

from callimachus import __version__

## one of DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("CALLIMACHUS_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("callimachus")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def errmsg(r) -> str:
    """Utility for formatting a an error response to an error string"""
    return "%s %s\n\n%s" % (r.status, r.reason, r.raw)


def weirdness(*reasons):
    from callimachus.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")


def assert_(condition: object) -> None:
    try:
        assert condition
    except AssertionError:
        if debugmode == "PRODUCTION":
            log.error("Deviation from expectations found.", exc_info=True)
        else:
            raise


class DAVError(Exception):
    """
    Base class for everything raised by this package.  Every error
    carries a stable code, so that log lines for the same failure mode
    can be searched for and referenced from a troubleshooting guide.
    """

    code: str = "WF11000"
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason

    def __str__(self) -> str:
        return "%s: %s at '%s', reason %s" % (
            self.code,
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class TransportFailure(DAVError):
    """
    The server answered with an HTTP status other than 2xx.  Network
    level failures are not wrapped, the ``requests`` exceptions are
    passed on as they are.
    """

    code = "WF11200"


class AuthorizationError(TransportFailure):
    """
    The server answered 401 or 403.  The url property will contain the
    url in question, the reason property will contain the excuse the
    server sent.
    """

    pass


class PropfindError(TransportFailure):
    pass


class NotFoundError(TransportFailure):
    pass


class QueryFailure(TransportFailure):
    """
    An event query towards one calendar failed, either on the HTTP
    level or because the calendar data returned could not be parsed.
    """

    code = "WF11303"


class MalformedReference(DAVError):
    """
    A href from the server could not be unescaped, or a property we
    depend on was missing from an otherwise successful response.
    """

    code = "WF11302"


@dataclass(frozen=True)
class DiscoveryAttempt:
    index: int
    path: str
    cause: BaseException


class DiscoveryExhausted(DAVError):
    """
    Every discovery candidate failed.  ``attempts`` holds one entry per
    candidate, in the order the candidates were tried.
    """

    code = "WF11301"

    def __init__(
        self, url: Optional[str] = None, attempts: Sequence[DiscoveryAttempt] = ()
    ) -> None:
        self.attempts: List[DiscoveryAttempt] = list(attempts)
        super(DiscoveryExhausted, self).__init__(
            url=url,
            reason="all attempts failed with the following errors: "
            + "; ".join(
                "[%i] '%s': %s" % (a.index, a.path, a.cause) for a in self.attempts
            ),
        )

    @property
    def causes(self) -> List[BaseException]:
        return [a.cause for a in self.attempts]


exception_by_method: Dict[str, Type[DAVError]] = defaultdict(lambda: TransportFailure)
exception_by_method["propfind"] = PropfindError
exception_by_method["report"] = QueryFailure
