"""
Date normalization for feed and proxy timestamps.

Policy, in order:
1. Tokens carrying an explicit zone (RFC 2822 ``+0300``/``GMT``, ISO 8601
   ``Z``/``+03:00``) are trusted as-is and keep their own offset.
2. The proxy form ``YYYY-MM-DD HH:MM:SS`` has no offset and is read under the
   configured DatePolicy. The same string always resolves to the same instant
   for a given configuration.
3. Anything else goes through dateparser; a result without a zone is
   ambiguous and rejected.

Unparseable tokens yield None. Callers must drop the record, never default to now.
"""
from __future__ import annotations

import contextlib
import re
from datetime import datetime, timezone, tzinfo
from email.utils import parsedate_to_datetime
from typing import Optional

import dateparser

from .config import DatePolicy


_PROXY_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_PROXY_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_rfc2822(raw: str) -> Optional[datetime]:
    # parsedate_to_datetime returns a naive value when the zone is missing,
    # "-0000" or a name the email package does not know.
    try:
        dt = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if dt is None or dt.tzinfo is None:
        return None
    return dt


def _parse_iso(raw: str) -> Optional[datetime]:
    s = raw
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return None
    return dt


def _parse_proxy(raw: str, policy: DatePolicy, local_tz: Optional[tzinfo]) -> Optional[datetime]:
    try:
        naive = datetime.strptime(raw, _PROXY_FORMAT)
    except ValueError:
        return None
    if policy is DatePolicy.UTC:
        return naive.replace(tzinfo=timezone.utc)
    if local_tz is not None:
        return naive.replace(tzinfo=local_tz)
    # System zone
    return naive.astimezone()


def _parse_generic(raw: str) -> Optional[datetime]:
    with contextlib.suppress(ValueError, OverflowError, TypeError):
        dt = dateparser.parse(raw)
        if dt is not None and dt.tzinfo is not None:
            return dt
    return None


def parse_date(
    token: Optional[str],
    *,
    policy: DatePolicy = DatePolicy.UTC,
    local_tz: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """Return a timezone-aware datetime for ``token``, or None if it cannot be trusted."""
    if not token:
        return None
    raw = token.strip()
    if not raw:
        return None

    dt = _parse_rfc2822(raw) or _parse_iso(raw)
    if dt is not None:
        return dt

    if _PROXY_RE.match(raw):
        return _parse_proxy(raw, policy, local_tz)

    return _parse_generic(raw)


def format_utc_offset(dt: datetime) -> str:
    """Format ``dt``'s UTC offset as ``+HH:MM``."""
    off = dt.utcoffset()
    if off is None:
        raise ValueError("naive datetime has no UTC offset")
    total = int(off.total_seconds())
    sign = "-" if total < 0 else "+"
    total = abs(total)
    return f"{sign}{total // 3600:02d}:{(total % 3600) // 60:02d}"
