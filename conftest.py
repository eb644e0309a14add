"""
Pytest configuration and fixtures.
"""

import os
import sys

# Add app directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# Set test environment
os.environ["TESTING"] = "1"
os.environ.setdefault("QRZ_PAGE_DELAY_SECONDS", "0")

import pytest

from models import QsoRecord


@pytest.fixture
def sample_qso():
    """A fully populated QSO record."""
    from datetime import date, time
    return QsoRecord(
        call="W1AW",
        station_callsign="K1ABC",
        qso_date=date(2024, 1, 15),
        time_on=time(14, 30, 0),
        band="20m",
        mode="SSB",
        time_off=time(14, 45, 0),
        freq=14.205,
        rst_sent="59",
        rst_rcvd="57",
        qth="Boston, MA",
        name="John",
        comment="Great signal!",
        additional_fields={"gridsquare": "FN42aa"},
    )
