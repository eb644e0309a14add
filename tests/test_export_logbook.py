"""
Tests for the logbook export script.
"""

import argparse
import pytest
import respx
import httpx

from adif import decode
from qrz_client import QRZ_API_URL
from scripts import export_logbook


ADIF_PAGE = (
    "<call:4>W1AW<station_callsign:5>K1ABC<qso_date:8>20240115<time_on:4>1430"
    "<band:3>20m<mode:3>SSB<comment:7>a&b<c>d<eor>"
    "<call:6>VE3XYZ<station_callsign:5>K1ABC<qso_date:8>20240116<time_on:6>080000"
    "<band:3>40m<mode:2>CW<eor>"
)


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(type(export_logbook.config), "QRZ_API_KEY", "ABCD-1234-EFGH-5678")


class TestBuildOptions:
    """Test command line filters become fetch options."""

    def test_no_filters_fetches_all(self):
        """Test no filters means ALL."""
        args = argparse.Namespace(band=None, mode=None, call=None)
        assert export_logbook.build_options(args).to_option_string() == "ALL"

    def test_filters(self):
        """Test band/mode/call filters."""
        args = argparse.Namespace(band="20m", mode="CW", call="w1aw")
        assert export_logbook.build_options(args).to_option_string() == "BAND:20m,MODE:CW,CALL:W1AW"


class TestExport:
    """Test writing a fetched logbook to disk."""

    @respx.mock
    def test_export_to_file(self, api_key, tmp_path):
        """Test exported file decodes back to the fetched QSOs."""
        respx.post(QRZ_API_URL).mock(
            return_value=httpx.Response(200, text=f"RESULT=OK&COUNT=2&LOGIDS=1,2&ADIF={ADIF_PAGE}")
        )
        outfile = tmp_path / "log.adi"

        count = export_logbook.main([str(outfile)])

        assert count == 2
        qsos = decode(outfile.read_text(encoding="utf-8"))
        assert [qso.call for qso in qsos] == ["W1AW", "VE3XYZ"]
        assert qsos[0].comment == "a&b<c>d"

    @respx.mock
    def test_export_to_stdout(self, api_key, capsys):
        """Test '-' writes to stdout."""
        respx.post(QRZ_API_URL).mock(
            return_value=httpx.Response(200, text="RESULT=FAIL&REASON=no result")
        )

        assert export_logbook.main(["-"]) == 0
        assert capsys.readouterr().out == "\n"

    def test_export_requires_api_key(self, monkeypatch):
        """Test a missing API key is reported."""
        monkeypatch.setattr(type(export_logbook.config), "QRZ_API_KEY", "")
        with pytest.raises(ValueError):
            export_logbook.main(["-"])
