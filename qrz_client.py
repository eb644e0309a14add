"""
QRZ Logbook API client for inserting, deleting and fetching QSO records.

All requests are form-encoded POSTs to a single endpoint. Responses come back
as KEY=VALUE pairs joined by '&', e.g. "RESULT=OK&LOGID=12345&COUNT=1".
"""

import asyncio
import html
import logging
import re
from dataclasses import replace
from typing import Dict, List, Optional

import httpx

from adif import decode, encode
from config import config
from models import (
    DeleteResponse, FetchOptions, FetchResponse, InsertResponse, QsoRecord, StatusResponse
)


logger = logging.getLogger(__name__)

QRZ_API_URL = config.QRZ_API_URL
MIN_API_KEY_LENGTH = 10
MAX_USER_AGENT_LENGTH = 128
GENERIC_USER_AGENT_PREFIXES = ("python-requests", "python-httpx", "node-fetch")
GENERIC_USER_AGENT_NAMES = ("curl", "wget")

# Known QRZ response keys. DATA is handled separately since its value holds
# nested KEY=VALUE pairs of its own.
RESPONSE_KEYS = ['RESULT', 'REASON', 'COUNT', 'LOGID', 'LOGIDS', 'ADIF']
RESPONSE_KEY_PATTERNS = {key: re.compile(f"(?:^|&){key}=") for key in RESPONSE_KEYS}
DATA_KEY_PATTERN = re.compile(r'(?:^|&)DATA=')


class QRZAPIError(Exception):
    """Exception for QRZ API errors."""
    pass


class QRZAuthError(QRZAPIError):
    """Invalid API key or insufficient privileges (RESULT=AUTH)."""
    pass


class InvalidAPIKeyError(QRZAPIError):
    pass


class InvalidUserAgentError(QRZAPIError):
    pass


class SensitiveDataFilter(logging.Filter):
    """Filter to redact API keys from log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r'((?:^|[?&\s])key=)[^&\s"]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r"('KEY': ')[^']+", re.IGNORECASE), r'\1[REDACTED]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            msg = str(record.msg)
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                msg = pattern.sub(replacement, msg)
            record.msg = msg
        return True


# Keep API keys out of httpx request logging
logging.getLogger("httpx").addFilter(SensitiveDataFilter())
logger.addFilter(SensitiveDataFilter())


def parse_qrz_response(text: str) -> Dict[str, str]:
    """
    Parse QRZ API response format (key=value&key=value).

    QRZ uses & as a field separator, but the ADIF payload can itself contain
    & and arrives with < > encoded as &lt; &gt;. HTML entities are decoded
    first, then each known key's value runs up to the next known key.

    Args:
        text: Raw response text

    Returns:
        Dictionary of response fields
    """
    decoded = html.unescape(text)

    result = {}
    envelope = decoded
    data_match = DATA_KEY_PATTERN.search(decoded)
    if data_match:
        result["DATA"] = decoded[data_match.end():].strip()
        envelope = decoded[:data_match.start()]

    found = {}
    for key, pattern in RESPONSE_KEY_PATTERNS.items():
        match = pattern.search(envelope)
        if match:
            found[key] = match

    for key, match in found.items():
        value_end = min(
            (other.start() for other in found.values() if other.start() > match.start()),
            default=len(envelope),
        )
        result[key] = envelope[match.end():value_end].strip()

    return result


def parse_data_params(data: str) -> Dict[str, str]:
    """Split the nested DATA value of a STATUS response into a dictionary."""
    params = {}
    for pair in data.split("&"):
        key, sep, value = pair.partition("=")
        if sep:
            params[key] = value
    return params


def parse_logids(logids: str) -> List[int]:
    """Parse a comma-separated logid list, ignoring anything that is not a number."""
    result = []
    for logid in logids.split(","):
        try:
            result.append(int(logid.strip()))
        except ValueError:
            continue
    return result


def _parse_int(result: Dict[str, str], key: str, default: Optional[str] = None) -> int:
    value = result.get(key, default)
    if value is None:
        raise QRZAPIError(f"Missing {key} in response")
    try:
        return int(value)
    except ValueError as e:
        raise QRZAPIError(f"Invalid {key} format") from e


def _raise_for_result(result: Dict[str, str]) -> None:
    """Raise the error matching a RESULT the caller did not expect."""
    status = result.get("RESULT")
    if status == "AUTH":
        raise QRZAuthError("Authentication failed or insufficient privileges")
    if status == "FAIL":
        raise QRZAPIError(f"API error: {result.get('REASON', 'Unknown error')}")
    raise QRZAPIError("Unexpected response format")


def parse_insert_response(text: str) -> InsertResponse:
    """Parse an INSERT response. RESULT=REPLACE means an existing QSO was overwritten."""
    result = parse_qrz_response(text)
    if result.get("RESULT") not in ("OK", "REPLACE"):
        _raise_for_result(result)

    return InsertResponse(
        logid=_parse_int(result, "LOGID"),
        count=_parse_int(result, "COUNT", default="1"),
    )


def parse_delete_response(text: str) -> DeleteResponse:
    result = parse_qrz_response(text)
    if result.get("RESULT") not in ("OK", "PARTIAL"):
        _raise_for_result(result)

    return DeleteResponse(
        deleted_count=_parse_int(result, "COUNT", default="0"),
        not_found_logids=parse_logids(result.get("LOGIDS", "")),
    )


def parse_status_response(text: str) -> StatusResponse:
    result = parse_qrz_response(text)
    if result.get("RESULT") != "OK":
        _raise_for_result(result)

    return StatusResponse(data=parse_data_params(result.get("DATA", "")))


def parse_fetch_response(text: str) -> FetchResponse:
    """
    Parse a FETCH response, decoding its ADIF payload.

    A FAIL whose reason mentions "no result" is an empty page, not an error.

    Raises:
        QRZAPIError: On FAIL/AUTH or a malformed envelope
        AdifParseError: If the ADIF payload is malformed
    """
    result = parse_qrz_response(text)
    status = result.get("RESULT")

    if status == "FAIL" and "no result" in result.get("REASON", "").lower():
        return FetchResponse(count=0, logids=[], qsos=[])
    if status != "OK":
        _raise_for_result(result)

    adif_data = result.get("ADIF", "")
    return FetchResponse(
        count=_parse_int(result, "COUNT", default="0"),
        logids=parse_logids(result.get("LOGIDS", "")),
        qsos=decode(adif_data) if adif_data else [],
    )


def validate_api_key(api_key: str) -> None:
    if not api_key or len(api_key) < MIN_API_KEY_LENGTH:
        raise InvalidAPIKeyError("Invalid API key format")


def validate_user_agent(user_agent: str) -> None:
    """
    QRZ requires an identifiable user agent of at most 128 characters.

    Generic library user agents are rejected.
    """
    if not user_agent or len(user_agent) > MAX_USER_AGENT_LENGTH:
        raise InvalidUserAgentError("Invalid user agent: must be 128 characters or less")

    lower = user_agent.lower()
    if lower.startswith(GENERIC_USER_AGENT_PREFIXES) or lower in GENERIC_USER_AGENT_NAMES:
        raise InvalidUserAgentError(f"Invalid user agent: {user_agent} is not identifiable")


def _page_after_logid(page: FetchResponse) -> Optional[int]:
    """Logid to page after: one past the highest logid seen on this page."""
    logids = list(page.logids)
    if not logids:
        # Fall back to the logids QRZ embeds in each record
        for qso in page.qsos:
            try:
                logids.append(int(qso.additional_fields.get("app_qrzlog_logid", "")))
            except ValueError:
                continue
    if not logids:
        return None
    return max(logids) + 1


class QRZLogbookClient:
    """
    Async client for the QRZ Logbook API.

    Example:
        client = QRZLogbookClient("ABCD-1234-EFGH-5678", "MyLogger/1.0 (N0CALL)")
        result = await client.insert_qso(qso)
    """

    def __init__(
        self,
        api_key: str,
        user_agent: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        page_delay: Optional[float] = None,
    ):
        user_agent = user_agent if user_agent is not None else config.QRZ_USER_AGENT
        validate_api_key(api_key)
        validate_user_agent(user_agent)

        self.api_key = api_key
        self.user_agent = user_agent
        self.api_url = api_url or QRZ_API_URL
        self.timeout = timeout if timeout is not None else config.QRZ_TIMEOUT_SECONDS
        self.page_size = page_size or config.QRZ_PAGE_SIZE
        self.page_delay = page_delay if page_delay is not None else config.QRZ_PAGE_DELAY_SECONDS

    async def _request(self, params: Dict[str, str]) -> str:
        """
        POST one action to the API.

        Returns:
            Raw response text

        Raises:
            QRZAPIError: On transport errors or non-2xx status
        """
        data = {"KEY": self.api_key, **params}
        logger.debug(f"QRZ request: ACTION={params['ACTION']}")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.api_url,
                    data=data,
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"QRZ {params['ACTION']} failed: {e}")
                raise QRZAPIError(f"HTTP error: {e}") from e

        return response.text

    async def insert_qso(self, qso: QsoRecord, replace_existing: bool = False) -> InsertResponse:
        """
        Insert a single QSO into the logbook.

        Args:
            qso: Record to insert
            replace_existing: Overwrite a duplicate QSO instead of failing

        Returns:
            InsertResponse with the new logid
        """
        params = {"ACTION": "INSERT", "ADIF": encode(qso)}
        if replace_existing:
            params["OPTION"] = "REPLACE"

        result = parse_insert_response(await self._request(params))
        logger.info(f"Inserted QSO with {qso.call} as logid {result.logid}")
        return result

    async def delete_qsos(self, logids: List[int]) -> DeleteResponse:
        """
        Delete QSOs by logid.

        Raises:
            ValueError: If no logids are given
        """
        if not logids:
            raise ValueError("No logids provided")

        params = {"ACTION": "DELETE", "LOGIDS": ",".join(str(logid) for logid in logids)}
        result = parse_delete_response(await self._request(params))
        logger.info(
            f"Deleted {result.deleted_count} QSOs, {len(result.not_found_logids)} not found"
        )
        return result

    async def get_status(self) -> StatusResponse:
        """Get logbook status information (owner, counts, date range)."""
        return parse_status_response(await self._request({"ACTION": "STATUS"}))

    async def fetch_qsos(self, options: Optional[FetchOptions] = None) -> FetchResponse:
        """
        Fetch one page of QSOs matching the options.

        Args:
            options: Filters; no OPTION parameter is sent when empty

        Returns:
            FetchResponse with the decoded QSOs
        """
        params = {"ACTION": "FETCH"}
        option_string = options.to_option_string() if options else ""
        if option_string:
            params["OPTION"] = option_string

        return parse_fetch_response(await self._request(params))

    async def fetch_all_qsos(self, options: Optional[FetchOptions] = None) -> List[QsoRecord]:
        """
        Fetch every QSO matching the options, paging with AFTERLOGID.

        Stops on an empty page, a page shorter than the page size, or when
        the logids stop advancing.

        Args:
            options: Filters; max and after_logid are managed here

        Returns:
            List of all QSOs in fetch order
        """
        options = options or FetchOptions()
        all_qsos = []
        after_logid = options.after_logid

        while True:
            page_options = replace(options, max=self.page_size, after_logid=after_logid)
            page = await self.fetch_qsos(page_options)

            if not page.qsos:
                break

            all_qsos.extend(page.qsos)
            logger.info(f"Fetched {len(page.qsos)} QSOs ({len(all_qsos)} total)")

            if len(page.qsos) < self.page_size:
                break

            next_logid = _page_after_logid(page)
            if next_logid is None or (after_logid is not None and next_logid <= after_logid):
                break
            after_logid = next_logid

            # Rate limiting - be respectful
            await asyncio.sleep(self.page_delay)

        return all_qsos
