import logging
from typing import Optional

from requests.auth import AuthBase
from requests.auth import HTTPBasicAuth
from requests.models import PreparedRequest

log = logging.getLogger("callimachus.transport")

LOG_PREFIX = "CalDAV:"
REPORT_METHOD = "REPORT"
RETURN_MINIMAL = "return-minimal"


class AuthenticatedTransport(AuthBase):
    """
    Decorates every outbound request with basic auth credentials and
    the headers CalDAV servers expect from us: a fixed ``Depth`` on
    REPORT requests and a ``Prefer: return-minimal`` on everything, so
    the server can leave out the 404-propstats.

    It's plugged into the requests session as the auth object.  It does
    no retries and enforces no timeout, the DAVClient timeout is the
    deadline.
    """

    def __init__(
        self,
        username: str,
        password: str,
        depth: str = "1",
        prefer: str = RETURN_MINIMAL,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.username = username
        self.password = password
        self.depth = depth
        self.prefer = prefer
        self.log = logger or log
        self._basic = HTTPBasicAuth(username, password)

    def __eq__(self, other: object) -> bool:
        return all(
            getattr(self, attr) == getattr(other, attr, None)
            for attr in ("username", "password", "depth", "prefer")
        )

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __call__(self, r: PreparedRequest) -> PreparedRequest:
        r = self._basic(r)
        if r.method == REPORT_METHOD:
            r.headers["Depth"] = self.depth
        r.headers["Prefer"] = self.prefer
        self.log.debug("%s %s %s", LOG_PREFIX, r.method, r.url)
        return r
