#!/usr/bin/env python
import pytest

from callimachus.calendar import ResponseType
from callimachus.calendar import Sensitivity
from callimachus.convert import classification_to_sensitivity
from callimachus.convert import participation_status_to_response_type


@pytest.mark.parametrize(
    "partstat,expected",
    [
        ("ACCEPTED", ResponseType.ACCEPTED),
        ("DECLINED", ResponseType.DECLINED),
        ("TENTATIVE", ResponseType.TENTATIVE),
        ("NEEDS-ACTION", ResponseType.NOT_RESPONDED),
        ("DELEGATED", ResponseType.NONE),
        ("accepted", ResponseType.ACCEPTED),
        ("COMPLETED", ResponseType.UNKNOWN),
        ("X-MAYBE", ResponseType.UNKNOWN),
        ("", ResponseType.UNKNOWN),
        (None, ResponseType.UNKNOWN),
    ],
)
def test_participation_status(partstat, expected):
    assert participation_status_to_response_type(partstat) == expected


@pytest.mark.parametrize(
    "classification,expected",
    [
        ("PUBLIC", Sensitivity.NORMAL),
        ("PRIVATE", Sensitivity.PRIVATE),
        ("CONFIDENTIAL", Sensitivity.CONFIDENTIAL),
        ("private", Sensitivity.PRIVATE),
        ("X-INTERNAL", Sensitivity.UNKNOWN),
        ("", Sensitivity.NORMAL),
        (None, Sensitivity.NORMAL),
    ],
)
def test_classification(classification, expected):
    assert classification_to_sensitivity(classification) == expected


def test_organizer_is_never_a_translation():
    ## ORGANIZER is a response type of its own, no PARTSTAT maps to it
    assert ResponseType.ORGANIZER not in [
        participation_status_to_response_type(p)
        for p in ("ACCEPTED", "DECLINED", "TENTATIVE", "NEEDS-ACTION", "DELEGATED")
    ]
