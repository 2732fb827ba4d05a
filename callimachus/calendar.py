#!/usr/bin/env python
"""
The protocol-agnostic calendar model.  Whatever protocol adapter
fetched the data, downstream sync logic only sees the types in this
module.
"""
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import List
from typing import Optional

## the zero time value, used where a timestamp is missing
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class ResponseType(Enum):
    """How an attendee has responded to a meeting request"""

    UNKNOWN = "Unknown"
    ORGANIZER = "Organizer"
    TENTATIVE = "Tentative"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    NOT_RESPONDED = "NoResponseReceived"
    NONE = "None"


class Sensitivity(Enum):
    UNKNOWN = "Unknown"
    NORMAL = "Normal"
    PERSONAL = "Personal"
    PRIVATE = "Private"
    CONFIDENTIAL = "Confidential"


class Importance(Enum):
    UNKNOWN = "Unknown"
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"


@dataclass(frozen=True)
class EmailAddress:
    name: str = ""
    address: str = ""


@dataclass(frozen=True)
class Attendee:
    email_address: EmailAddress
    response_type: ResponseType = ResponseType.UNKNOWN


@dataclass(frozen=True)
class NormalizedEvent:
    """
    One calendar event, as delivered to the sync logic.  All fields are
    plain values copied out of the protocol data at mapping time.
    """

    uid: str
    subject: str
    description: str
    url: str
    start: datetime
    end: datetime
    time_zone: str
    location: str
    response_type: ResponseType
    organizer: Optional[EmailAddress]
    attendees: List[Attendee] = field(default_factory=list)
    is_recurring: bool = False
    is_all_day: bool = False
    importance: Importance = Importance.UNKNOWN
    sensitivity: Sensitivity = Sensitivity.NORMAL
    created_at: datetime = ZERO_TIME
    last_modified_at: datetime = ZERO_TIME
    calendar_id: str = ""
    calendar_display_name: str = ""
    calendar_item_id: str = ""


class CalendarClientBase(ABC):
    """
    The contract every calendar protocol adapter fulfills.  A client is
    bound to one account.
    """

    @abstractmethod
    def calendar_events(
        self, start_utc: datetime, end_utc: datetime
    ) -> List[NormalizedEvent]:
        """
        Returns the events of all the account's calendars overlapping
        the window between start_utc and end_utc.
        """
        raise NotImplementedError()
