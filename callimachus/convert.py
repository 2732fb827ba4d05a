#!/usr/bin/env python
"""
Fixed translation tables from iCalendar property values (RFC5545) into
the enumerations of callimachus.calendar.
"""
from typing import Dict
from typing import Optional

from callimachus.calendar import ResponseType
from callimachus.calendar import Sensitivity

## RFC5545, section 3.2.12
PARTSTAT_TO_RESPONSE_TYPE: Dict[str, ResponseType] = {
    "ACCEPTED": ResponseType.ACCEPTED,
    "DECLINED": ResponseType.DECLINED,
    "TENTATIVE": ResponseType.TENTATIVE,
    "NEEDS-ACTION": ResponseType.NOT_RESPONDED,
    "DELEGATED": ResponseType.NONE,
}

## RFC5545, section 3.8.1.3
CLASS_TO_SENSITIVITY: Dict[str, Sensitivity] = {
    "PUBLIC": Sensitivity.NORMAL,
    "PRIVATE": Sensitivity.PRIVATE,
    "CONFIDENTIAL": Sensitivity.CONFIDENTIAL,
}


def participation_status_to_response_type(partstat: Optional[str]) -> ResponseType:
    if not partstat:
        return ResponseType.UNKNOWN
    return PARTSTAT_TO_RESPONSE_TYPE.get(str(partstat).upper(), ResponseType.UNKNOWN)


def classification_to_sensitivity(classification: Optional[str]) -> Sensitivity:
    """
    A missing CLASS means PUBLIC according to the RFC, experimental and
    other unknown values are reported as UNKNOWN.
    """
    if not classification:
        return Sensitivity.NORMAL
    return CLASS_TO_SENSITIVITY.get(str(classification).upper(), Sensitivity.UNKNOWN)
