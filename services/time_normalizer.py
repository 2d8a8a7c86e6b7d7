"""Rewrite compact ``HHMM`` report times into absolute ISO-8601 timestamps.

SPC report files carry only a time of day; the date lives in the file name
(``240426_rpts_hail.csv``). Normalization is best-effort: whenever the file
cannot be handled cleanly the original bytes are returned untouched, because
the fixture server must keep serving even malformed inputs.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from typing import Optional

logger = logging.getLogger(__name__)

TIME_COLUMN = "Time"


def parse_fixture_date(filename: str) -> Optional[date]:
    """Return the ``YYMMDD`` date encoded in the first six characters, if any."""
    if len(filename) < 6:
        return None
    try:
        return datetime.strptime(filename[:6], "%y%m%d").date()
    except ValueError:
        return None


def expand_hhmm(value: str, date_str: str) -> str:
    """Convert ``HHMM`` (or a shorter form) to ``{date}T{HH}:{MM}:00Z``."""
    compact = value.strip()
    if len(compact) < 3:
        return f"{date_str}T00:00:00Z"
    padded = compact.zfill(4)
    return f"{date_str}T{padded[:2]}:{padded[2:4]}:00Z"


def expand_times(data: bytes, fixture_date: date) -> bytes:
    try:
        text = data.decode("utf-8")
        rows = [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    except (UnicodeDecodeError, csv.Error) as exc:
        logger.warning("Serving fixture without time expansion", extra={"reason": str(exc)})
        return data

    if len(rows) < 2:
        return data

    header = rows[0]
    if any(len(row) != len(header) for row in rows[1:]):
        logger.warning("Serving fixture without time expansion: ragged rows")
        return data

    try:
        time_index = header.index(TIME_COLUMN)
    except ValueError:
        return data

    date_str = fixture_date.isoformat()
    for row in rows[1:]:
        row[time_index] = expand_hhmm(row[time_index], date_str)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")
