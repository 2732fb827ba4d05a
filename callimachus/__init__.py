#!/usr/bin/env python
import logging

__version__ = "0.3.0"

from .collection import CalendarClient
from .collection import CalendarListEntry
from .davclient import DAVClient
from .davclient import get_calendar_client
from .davclient import get_client_from_config
from .discovery import ServerDiscoverer

# Silence notification of no default logging handler
log = logging.getLogger("callimachus")
log.addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "CalendarClient",
    "CalendarListEntry",
    "DAVClient",
    "ServerDiscoverer",
    "get_calendar_client",
    "get_client_from_config",
]
