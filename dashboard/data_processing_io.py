from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import httpx
import pandas as pd
from django.conf import settings

from .marketing_data import MarketingData


logger = logging.getLogger(__name__)


class MarketingDataError(Exception):
    '''
    Raised when the marketing dataset cannot be fetched or parsed.
    ``str(exc)`` is the message shown to the user.
    '''


# ------------------------
# Fetch
# ------------------------

def _is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def _decode_payload(raw: bytes) -> Any:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        text = raw.decode("latin1")
    return json.loads(text)


def _read_url(url: str, timeout: Optional[float], client: Optional[httpx.Client]) -> bytes:
    if client is not None:
        response = client.get(url)
        response.raise_for_status()
        return response.content
    with httpx.Client(timeout=timeout, follow_redirects=True) as c:
        response = c.get(url)
        response.raise_for_status()
        return response.content


def _read_path(path: str) -> bytes:
    return Path(path).expanduser().read_bytes()


def fetch_marketing_data(
    source: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
    client: Optional[httpx.Client] = None,
) -> MarketingData:
    '''
    Load the full marketing dataset from ``source`` (an http(s) URL or a
    JSON file path). Defaults come from ``settings.MARKETING_DATA_SOURCE``
    and ``settings.MARKETING_DATA_TIMEOUT``.

    Every failure surfaces as ``MarketingDataError`` with a readable message.
    '''
    source = source or getattr(settings, "MARKETING_DATA_SOURCE", "")
    if timeout is None:
        timeout = getattr(settings, "MARKETING_DATA_TIMEOUT", None)
    if not source:
        raise MarketingDataError("No marketing data source configured")

    try:
        if _is_url(source):
            raw = _read_url(source, timeout, client)
        else:
            raw = _read_path(source)
    except httpx.HTTPStatusError as exc:
        raise MarketingDataError(
            f"Failed to load data: server responded with {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise MarketingDataError(f"Failed to load data: {exc}") from exc
    except OSError as exc:
        raise MarketingDataError(f"Failed to read data file: {exc}") from exc

    try:
        payload = _decode_payload(raw)
        data = MarketingData.from_dict(payload)
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError too
        raise MarketingDataError(f"Invalid marketing data: {exc}") from exc

    logger.info("Loaded %d campaigns from %s", len(data.campaigns), source)
    return data


# ------------------------
# Date parsing
# ------------------------

# Slash dates are month-first, matching parse_instant.
_CANDIDATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
]


def parse_instant(value: Any) -> pd.Timestamp:
    '''
    Parse a single date-like value into a naive UTC timestamp.
    Returns ``pd.NaT`` for missing or unparsable values instead of raising.
    '''
    if value is None:
        return pd.NaT
    if isinstance(value, str) and not value.strip():
        return pd.NaT
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def _guess_datetime_format(values: pd.Series, min_match: float = 1.0) -> Optional[str]:
    s = values.dropna().astype(str)
    if s.empty:
        return None
    for fmt in _CANDIDATE_FORMATS:
        parsed = pd.to_datetime(s, format=fmt, errors="coerce")
        if float(parsed.notna().mean()) >= min_match:
            return fmt
    return None


def parse_dates_with_audit(values: Iterable[Any]) -> tuple[pd.Series, str]:
    '''
    Parse a column of date strings. A single explicit format is used when
    every value matches it; otherwise each value is parsed on its own.
    The audit string says which path was taken.
    '''
    s = pd.Series(list(values), dtype="object")
    if s.empty:
        return pd.Series([], dtype="datetime64[ns]"), "no values"

    fmt = _guess_datetime_format(s)
    if fmt:
        return pd.to_datetime(s.astype(str), format=fmt, errors="coerce"), f"parsed with explicit format '{fmt}'"

    parsed = pd.to_datetime(pd.Series([parse_instant(v) for v in s], dtype="object"), errors="coerce")
    return parsed, "parsed value by value"
