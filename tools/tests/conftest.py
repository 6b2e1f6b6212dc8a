"""
pytest configuration and fixtures.
"""

import os
import sys

import pytest

# Add parent directory to path for divelog_parser import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fit_helpers import (
    FitBuilder, le, record_fields, record_payload, DIVE_START,
    ENUM, UINT16, UINT32, STRING,
)


@pytest.fixture
def builder():
    return FitBuilder()


@pytest.fixture
def scenario_a():
    """Two little-endian record messages: (1000, 5000 mm) and (1001, 4000 mm)"""
    b = FitBuilder()
    b.definition(0, 20, [(253, 4, UINT32), (92, 4, UINT32)])
    b.data(0, le('II', 1000, 5000))
    b.data(0, le('II', 1001, 4000))
    return b.build(header_size=14)


@pytest.fixture
def session_only():
    """Valid file with a session but no record messages"""
    b = FitBuilder()
    b.definition(0, 18, [(253, 4, UINT32), (2, 4, UINT32), (7, 4, UINT32)])
    b.data(0, le('III', DIVE_START + 600, DIVE_START, 600000))
    return b.build()


@pytest.fixture
def full_dive():
    """
    Complete dive: file_id, six records, session, dive summary.

    Depths 0, 3, 6, 6, 3, 0 m at 10 s intervals; the device recorded the
    ascent rate only on the fourth record.
    """
    b = FitBuilder()
    b.definition(0, 0, [(0, 1, ENUM), (1, 2, UINT16), (8, 12, STRING)])
    b.data(0, le('BH', 4, 1) + b'Descent\x00\x00\x00\x00\x00')

    b.definition(1, 20, record_fields())
    b.data(1, record_payload(DIVE_START, 0, temp=24, ndl=5940, cns=0))
    b.data(1, record_payload(DIVE_START + 10, 3000, temp=23, ndl=5940, cns=0))
    b.data(1, record_payload(DIVE_START + 20, 6000, temp=22, ndl=3000, cns=1))
    b.data(1, record_payload(DIVE_START + 30, 6000, ascent_mm_s=-50, temp=21, ndl=2900, cns=1))
    b.data(1, record_payload(DIVE_START + 40, 3000, temp=22))
    b.data(1, record_payload(DIVE_START + 50, 0, temp=23))

    b.definition(2, 18, [(253, 4, UINT32), (2, 4, UINT32), (7, 4, UINT32)])
    b.data(2, le('III', DIVE_START + 60, DIVE_START - 5, 55000))

    b.definition(3, 268, [(253, 4, UINT32), (2, 4, UINT32), (3, 4, UINT32)])
    b.data(3, le('III', DIVE_START + 60, 3500, 6200))
    return b.build()
