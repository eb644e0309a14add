"""
Data models for QRZ Logbook QSO records and API responses.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional


DEFAULT_QSO_DATE = date(1900, 1, 1)
DEFAULT_TIME_ON = time(0, 0, 0)

MANDATORY_FIELDS = ("call", "station_callsign", "qso_date", "time_on", "band", "mode")


@dataclass(frozen=True)
class QsoRecord:
    """A single logged radio contact."""
    call: str
    station_callsign: str
    qso_date: date
    time_on: time
    band: str
    mode: str
    time_off: Optional[time] = None
    freq: Optional[float] = None  # MHz
    rst_sent: Optional[str] = None
    rst_rcvd: Optional[str] = None
    qth: Optional[str] = None
    name: Optional[str] = None
    comment: Optional[str] = None
    additional_fields: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Read-only copy so the record cannot change after construction
        object.__setattr__(self, "additional_fields", MappingProxyType(dict(self.additional_fields)))

    @staticmethod
    def builder() -> "QsoRecordBuilder":
        return QsoRecordBuilder()

    @property
    def qso_datetime(self) -> datetime:
        return datetime.combine(self.qso_date, self.time_on)


class QsoRecordBuilder:
    """
    Fluent builder for QsoRecord.

    Every setter returns the builder so calls can be chained:

        qso = (QsoRecord.builder()
               .call("W1AW")
               .station_callsign("K1ABC")
               .date(date(2024, 1, 15))
               .time_on(time(14, 30))
               .band("20m")
               .mode("SSB")
               .build())
    """

    def __init__(self):
        self._values: Dict[str, object] = {}
        self._additional_fields: Dict[str, str] = {}

    def _set(self, name: str, value) -> "QsoRecordBuilder":
        self._values[name] = value
        return self

    def call(self, call: str) -> "QsoRecordBuilder":
        return self._set("call", call)

    def station_callsign(self, callsign: str) -> "QsoRecordBuilder":
        return self._set("station_callsign", callsign)

    def date(self, qso_date: date) -> "QsoRecordBuilder":
        return self._set("qso_date", qso_date)

    def time_on(self, time_on: time) -> "QsoRecordBuilder":
        return self._set("time_on", time_on)

    def time_off(self, time_off: time) -> "QsoRecordBuilder":
        return self._set("time_off", time_off)

    def band(self, band: str) -> "QsoRecordBuilder":
        return self._set("band", band)

    def mode(self, mode: str) -> "QsoRecordBuilder":
        return self._set("mode", mode)

    def freq(self, freq: float) -> "QsoRecordBuilder":
        return self._set("freq", freq)

    def rst_sent(self, rst: str) -> "QsoRecordBuilder":
        return self._set("rst_sent", rst)

    def rst_rcvd(self, rst: str) -> "QsoRecordBuilder":
        return self._set("rst_rcvd", rst)

    def qth(self, qth: str) -> "QsoRecordBuilder":
        return self._set("qth", qth)

    def name(self, name: str) -> "QsoRecordBuilder":
        return self._set("name", name)

    def comment(self, comment: str) -> "QsoRecordBuilder":
        return self._set("comment", comment)

    def additional_field(self, key: str, value: str) -> "QsoRecordBuilder":
        self._additional_fields[key] = value
        return self

    def build(self, strict: bool = False) -> QsoRecord:
        """
        Materialize the record.

        Unset mandatory fields are filled with placeholders (empty strings,
        1900-01-01, 00:00:00) unless strict is True, in which case a
        ValueError naming the missing fields is raised.

        Args:
            strict: Fail instead of substituting defaults for mandatory fields

        Returns:
            QsoRecord
        """
        if strict:
            missing = [name for name in MANDATORY_FIELDS if name not in self._values]
            if missing:
                raise ValueError(f"Missing mandatory fields: {', '.join(missing)}")

        values = self._values
        return QsoRecord(
            call=values.get("call", ""),
            station_callsign=values.get("station_callsign", ""),
            qso_date=values.get("qso_date", DEFAULT_QSO_DATE),
            time_on=values.get("time_on", DEFAULT_TIME_ON),
            band=values.get("band", ""),
            mode=values.get("mode", ""),
            time_off=values.get("time_off"),
            freq=values.get("freq"),
            rst_sent=values.get("rst_sent"),
            rst_rcvd=values.get("rst_rcvd"),
            qth=values.get("qth"),
            name=values.get("name"),
            comment=values.get("comment"),
            additional_fields=dict(self._additional_fields),
        )


@dataclass
class InsertResponse:
    """Result of an INSERT action."""
    logid: int
    count: int


@dataclass
class DeleteResponse:
    """Result of a DELETE action."""
    deleted_count: int
    not_found_logids: List[int]


@dataclass
class StatusResponse:
    """Result of a STATUS action."""
    data: Dict[str, str]


@dataclass
class FetchResponse:
    """Result of a FETCH action."""
    count: int
    logids: List[int]
    qsos: List[QsoRecord]


@dataclass
class FetchOptions:
    """Filters for a FETCH action, rendered into the OPTION parameter."""
    all: bool = False
    band: Optional[str] = None
    mode: Optional[str] = None
    call: Optional[str] = None
    max: Optional[int] = None
    after_logid: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @classmethod
    def all_records(cls) -> "FetchOptions":
        return cls(all=True)

    def with_band(self, band: str) -> "FetchOptions":
        self.band = band
        return self

    def with_mode(self, mode: str) -> "FetchOptions":
        self.mode = mode
        return self

    def with_call(self, call: str) -> "FetchOptions":
        self.call = call
        return self

    def with_max(self, max_records: int) -> "FetchOptions":
        self.max = max_records
        return self

    def with_after_logid(self, logid: int) -> "FetchOptions":
        self.after_logid = logid
        return self

    def with_date_range(self, date_from: date, date_to: date) -> "FetchOptions":
        self.date_from = date_from
        self.date_to = date_to
        return self

    def to_option_string(self) -> str:
        """
        Render the options as QRZ expects them, e.g. "BAND:20m,MODE:SSB,MAX:250".

        Returns:
            Comma-separated option string (empty if no filters are set)
        """
        options = []
        if self.all:
            options.append("ALL")
        if self.band:
            options.append(f"BAND:{self.band}")
        if self.mode:
            options.append(f"MODE:{self.mode}")
        if self.call:
            options.append(f"CALL:{self.call}")
        if self.max is not None:
            options.append(f"MAX:{self.max}")
        if self.after_logid is not None:
            options.append(f"AFTERLOGID:{self.after_logid}")
        if self.date_from:
            options.append(f"DATEFROM:{self.date_from.strftime('%Y%m%d')}")
        if self.date_to:
            options.append(f"DATETO:{self.date_to.strftime('%Y%m%d')}")
        return ",".join(options)
