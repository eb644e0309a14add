"""
ADIF (Amateur Data Interchange Format) encoding and decoding for QSO records.

ADIF format: <FIELD:LENGTH>value<FIELD:LENGTH>value...<EOR>

Values are extracted by their declared length only, so they may contain any
character including '<', '>' and '&'.
"""

import re
from datetime import date, time
from typing import Dict, Iterable, List, Optional

from models import QsoRecord


EOR_MARKER = "<eor>"
EOR_PATTERN = re.compile(r'<eor>', re.IGNORECASE)

# Field name ends at ':' (length follows) or '>' (marker tag such as <eoh>)
TAG_NAME_END = re.compile(r'[:>]')
LENGTH_SPEC = re.compile(r'[0-9]+')
# Optional sign, digits with optional fraction, optional exponent; or inf/nan
FREQ_PATTERN = re.compile(
    r'[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)',
    re.IGNORECASE,
)
DATE_PATTERN = re.compile(r'([0-9]{4})([0-9]{2})([0-9]{2})')
TIME_PATTERN = re.compile(r'([0-9]{2})([0-9]{2})([0-9]{2})')


class AdifParseError(ValueError):
    """Exception for malformed ADIF data."""
    pass


# Value conversions

def format_date(value: date) -> str:
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


def format_time(value: time) -> str:
    """Format a time as HHMM. Seconds are dropped."""
    return f"{value.hour:02d}{value.minute:02d}"


def format_freq(value: float) -> str:
    return str(value)


def parse_date(value: str) -> date:
    """
    Parse an ADIF date (YYYYMMDD).

    Raises:
        AdifParseError: If the value is not 8 digits or not a real calendar date
    """
    if len(value) != 8:
        raise AdifParseError("Date must be 8 characters (YYYYMMDD)")

    match = DATE_PATTERN.fullmatch(value)
    if not match:
        raise AdifParseError(f"Invalid date: {value}")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise AdifParseError(f"Invalid date: {value}") from e


def parse_time(value: str) -> time:
    """
    Parse an ADIF time, either HHMM or HHMMSS. HHMM gets 00 seconds.

    Raises:
        AdifParseError: If the value has the wrong length or is out of range
    """
    if len(value) == 4:
        value = value + "00"

    if len(value) != 6:
        raise AdifParseError("Time must be 4 or 6 characters (HHMM or HHMMSS)")

    match = TIME_PATTERN.fullmatch(value)
    if not match:
        raise AdifParseError(f"Invalid time: {value}")

    hour, minute, second = (int(part) for part in match.groups())
    try:
        return time(hour, minute, second)
    except ValueError as e:
        raise AdifParseError(f"Invalid time: {value}") from e


def parse_freq(value: str) -> float:
    if not FREQ_PATTERN.fullmatch(value):
        raise AdifParseError("Invalid frequency format")
    return float(value)


# Encoding

def _field(name: str, value: str) -> str:
    return f"<{name.lower()}:{len(value)}>{value}"


def encode(qso: QsoRecord) -> str:
    """
    Convert a QSO record to a single ADIF record terminated by <eor>.

    Mandatory fields come first in a fixed order, then populated optional
    fields, then additional fields.

    Args:
        qso: Record to encode

    Returns:
        ADIF text for one record
    """
    fields = [
        _field("call", qso.call),
        _field("station_callsign", qso.station_callsign),
        _field("qso_date", format_date(qso.qso_date)),
        _field("time_on", format_time(qso.time_on)),
        _field("band", qso.band),
        _field("mode", qso.mode),
    ]

    if qso.time_off is not None:
        fields.append(_field("time_off", format_time(qso.time_off)))
    if qso.freq is not None:
        fields.append(_field("freq", format_freq(qso.freq)))

    for name in ("rst_sent", "rst_rcvd", "qth", "name", "comment"):
        value = getattr(qso, name)
        if value is not None:
            fields.append(_field(name, value))

    for key, value in qso.additional_fields.items():
        fields.append(_field(key, value))

    fields.append(EOR_MARKER)
    return "".join(fields)


def encode_records(qsos: Iterable[QsoRecord]) -> str:
    """Encode several records, one per line."""
    return "\n".join(encode(qso) for qso in qsos)


# Decoding

def strip_header(adif_string: str) -> str:
    """
    Drop an ADIF file header if there is one.

    A header exists only when the text does not start with '<'; it runs up
    to and including the first <eoh> tag. An <eoh> inside a header field's
    value does not end the header.
    """
    if adif_string.lstrip().startswith("<"):
        return adif_string

    header_end = _header_end(adif_string)
    if header_end is None:
        return adif_string
    return adif_string[header_end:]


def _header_end(text: str) -> Optional[int]:
    """Index just past the first <eoh> tag, skipping length-delimited values."""
    pos = text.find("<")
    while pos != -1:
        name_end = TAG_NAME_END.search(text, pos + 1)
        if name_end is None:
            return None

        if name_end.group() == ">":
            if text[pos + 1:name_end.start()].lower() == "eoh":
                return name_end.end()
            pos = text.find("<", name_end.end())
            continue

        spec_end = text.find(">", name_end.end())
        if spec_end == -1:
            return None

        length_spec = text[name_end.end():spec_end]
        if LENGTH_SPEC.fullmatch(length_spec):
            pos = text.find("<", spec_end + 1 + int(length_spec))
        else:
            pos = text.find("<", pos + 1)
    return None


def tokenize_record(record: str) -> Dict[str, str]:
    """
    Scan one record's <name:length>value tokens into a field dictionary.

    Field names are lowercased. Marker tags without a length are skipped, as
    is any text outside a tag. A later duplicate overwrites an earlier one.

    Args:
        record: Text of a single record without its <eor>

    Returns:
        Dictionary of field name -> raw value

    Raises:
        AdifParseError: On a non-numeric length or a value running past the record
    """
    fields = {}
    pos = 0
    record_end = len(record)

    while pos < record_end:
        if record[pos] != "<":
            pos += 1
            continue

        name_end = TAG_NAME_END.search(record, pos + 1)
        if name_end is None:
            break

        field_name = record[pos + 1:name_end.start()].lower()

        if name_end.group() == ">":
            pos = name_end.end()
            continue

        spec_end = record.find(">", name_end.end())
        if spec_end == -1:
            break

        length_spec = record[name_end.end():spec_end]
        if not LENGTH_SPEC.fullmatch(length_spec):
            raise AdifParseError(f"Invalid length: {length_spec}")

        value_start = spec_end + 1
        value_end = value_start + int(length_spec)
        if value_end > record_end:
            raise AdifParseError("Field value extends beyond record")

        fields[field_name] = record[value_start:value_end]
        pos = value_end

    return fields


def _take_required(fields: Dict[str, str], name: str) -> str:
    value = fields.pop(name, None)
    if value is None:
        raise AdifParseError(f"Missing {name} field")
    return value


def assemble_record(fields: Dict[str, str]) -> QsoRecord:
    """
    Build a QsoRecord from tokenized fields.

    Recognized fields are converted to their typed attributes; everything
    else is kept in additional_fields.

    Args:
        fields: Dictionary from tokenize_record

    Returns:
        QsoRecord

    Raises:
        AdifParseError: If a mandatory field is missing or a value is invalid
    """
    remaining = dict(fields)

    call = _take_required(remaining, "call")
    station_callsign = _take_required(remaining, "station_callsign")
    band = _take_required(remaining, "band")
    mode = _take_required(remaining, "mode")
    qso_date = parse_date(_take_required(remaining, "qso_date"))
    time_on = parse_time(_take_required(remaining, "time_on"))

    time_off: Optional[time] = None
    time_off_str = remaining.pop("time_off", None)
    if time_off_str is not None:
        time_off = parse_time(time_off_str)

    freq: Optional[float] = None
    freq_str = remaining.pop("freq", None)
    if freq_str is not None:
        freq = parse_freq(freq_str)

    return QsoRecord(
        call=call,
        station_callsign=station_callsign,
        qso_date=qso_date,
        time_on=time_on,
        band=band,
        mode=mode,
        time_off=time_off,
        freq=freq,
        rst_sent=remaining.pop("rst_sent", None),
        rst_rcvd=remaining.pop("rst_rcvd", None),
        qth=remaining.pop("qth", None),
        name=remaining.pop("name", None),
        comment=remaining.pop("comment", None),
        additional_fields=remaining,
    )


def decode(adif_string: str) -> List[QsoRecord]:
    """
    Parse ADIF text into QSO records, in file order.

    Any malformed record fails the whole call; nothing is skipped.

    Args:
        adif_string: Raw ADIF data, zero or more <eor>-terminated records

    Returns:
        List of QsoRecord

    Raises:
        AdifParseError: If any record is malformed
    """
    qsos = []
    for record in EOR_PATTERN.split(strip_header(adif_string)):
        if not record.strip():
            continue
        qsos.append(assemble_record(tokenize_record(record)))
    return qsos
