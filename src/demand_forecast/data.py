from __future__ import annotations

import logging
import math
import re
import warnings
from bisect import bisect_left
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import EmptyResultError, ForecastDataError, FormatError, MissingColumnError

LOG = logging.getLogger(__name__)

FRAME_COLUMNS: Sequence[str] = ("date", "actual", "forecast", "category")

_LINE_BREAK = re.compile(r"\r?\n")
_DATE_SEPARATORS = re.compile(r"[/-]")
_CURRENCY_SYMBOLS = re.compile(r"[$,£€]")
# Leading numeric prefix; trailing text such as units or "%" is ignored.
_LEADING_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class CategorySpec(NamedTuple):
    name: str
    color: str


DEFAULT_CATEGORIES: Tuple[CategorySpec, ...] = (
    CategorySpec("Electronics", "#3b82f6"),
    CategorySpec("Clothing", "#ef4444"),
    CategorySpec("Home & Kitchen", "#10b981"),
    CategorySpec("Toys & Games", "#f59e0b"),
    CategorySpec("Beauty", "#8b5cf6"),
)


@dataclass(frozen=True)
class DataPoint:
    date: pd.Timestamp
    actual: Optional[float] = None
    forecast: Optional[float] = None
    category: Optional[str] = None


@dataclass
class CategoryData:
    name: str
    color: str
    data: List[DataPoint] = field(default_factory=list)


@dataclass(frozen=True)
class RowSkipped:
    line_number: int
    reason: str
    raw: str


@dataclass
class ParseResult:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    data: List[DataPoint] = field(default_factory=list)
    error: Optional[str] = None
    skipped: List[RowSkipped] = field(default_factory=list)
    failure: Optional[ForecastDataError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def fail(self, exc: ForecastDataError) -> None:
        self.failure = exc
        self.error = str(exc)

    def raise_for_error(self) -> None:
        if self.failure is not None:
            raise self.failure


@dataclass(frozen=True)
class ColumnRule:
    role: str
    required: bool
    equals: Tuple[str, ...] = ()
    contains: Tuple[str, ...] = ()
    missing_message: str = ""

    def matches(self, header: str) -> bool:
        lowered = header.lower()
        return lowered in self.equals or any(token in lowered for token in self.contains)


COLUMN_RULES: Tuple[ColumnRule, ...] = (
    ColumnRule(
        "date",
        required=True,
        equals=("date",),
        contains=("date",),
        missing_message="Missing required 'date' column",
    ),
    ColumnRule(
        "value",
        required=True,
        equals=("value", "sales"),
        contains=("demand", "quantity"),
        missing_message="Missing required 'value' or 'sales' column",
    ),
    ColumnRule("category", required=False, equals=("category",), contains=("product",)),
)


def round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def to_timestamp(value: object, date_format: Optional[str] = None) -> Optional[pd.Timestamp]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(value, format=date_format, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if not isinstance(parsed, pd.Timestamp) or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC").tz_localize(None)
    return parsed


def month_start(timestamp: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=timestamp.year, month=timestamp.month, day=1)


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line into trimmed fields.

    Double-quoted fields may contain commas, and ``""`` inside quotes is a
    literal quote. An unterminated quote runs to the end of the line.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    index = 0
    length = len(line)

    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1

    fields.append("".join(current).strip())
    return fields


def _reordered_date_candidates(parts: Sequence[str]) -> List[str]:
    first, second, third = (part.strip() for part in parts)
    return [
        f"{third}-{first.zfill(2)}-{second.zfill(2)}",  # month/day/year
        f"{third}-{second.zfill(2)}-{first.zfill(2)}",  # day/month/year
        f"{first}-{second.zfill(2)}-{third.zfill(2)}",  # year/month/day
    ]


def parse_date(raw: str) -> Optional[pd.Timestamp]:
    parsed = to_timestamp(raw)
    if parsed is not None:
        return parsed

    parts = _DATE_SEPARATORS.split(raw.strip())
    if len(parts) != 3:
        return None
    for candidate in _reordered_date_candidates(parts):
        parsed = to_timestamp(candidate, date_format="%Y-%m-%d")
        if parsed is not None:
            return parsed
    return None


def parse_value(raw: str) -> Optional[float]:
    cleaned = _CURRENCY_SYMBOLS.sub("", raw).strip()
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return None
    value = float(match.group(0))
    if not np.isfinite(value):
        return None
    return value


def locate_columns(headers: Sequence[str]) -> Dict[str, Optional[int]]:
    located: Dict[str, Optional[int]] = {}
    for rule in COLUMN_RULES:
        index = next((i for i, header in enumerate(headers) if rule.matches(header)), None)
        if index is None and rule.required:
            raise MissingColumnError(rule.role, rule.missing_message)
        located[rule.role] = index
    return located


def _default_category(line_number: int) -> str:
    return DEFAULT_CATEGORIES[line_number % len(DEFAULT_CATEGORIES)].name


def _skip(result: ParseResult, line_number: int, reason: str, raw: str) -> None:
    result.skipped.append(RowSkipped(line_number=line_number, reason=reason, raw=raw))


def _populate(result: ParseResult, csv_text: str, preview_only: bool) -> None:
    lines = [line for line in _LINE_BREAK.split(csv_text) if line.strip()]
    if len(lines) < 2:
        raise FormatError("File must contain headers and at least one row of data")

    result.headers = parse_csv_line(lines[0])
    columns = locate_columns(result.headers)
    date_index = columns["date"]
    value_index = columns["value"]
    category_index = columns["category"]
    LOG.debug(
        "Located date column %s, value column %s, category column %s",
        date_index,
        value_index,
        category_index,
    )

    expected = len(result.headers)
    for line_number, line in enumerate(lines[1:], start=1):
        row = parse_csv_line(line)
        if len(row) != expected:
            LOG.warning("Row %d has %d columns, expected %d", line_number, len(row), expected)
            _skip(result, line_number, "column_count", line)
            continue

        result.rows.append(row)
        if preview_only:
            continue

        if category_index is not None:
            category = row[category_index].strip() or None
        else:
            category = _default_category(line_number)

        date = parse_date(row[date_index])
        if date is None:
            LOG.warning("Invalid date format: %s", row[date_index])
            _skip(result, line_number, "invalid_date", line)
            continue

        value = parse_value(row[value_index])
        if value is None:
            LOG.warning("Invalid numeric value: %s", row[value_index])
            _skip(result, line_number, "invalid_value", line)
            continue

        result.data.append(DataPoint(date=date, actual=value, forecast=None, category=category))

    result.data.sort(key=lambda point: point.date)

    if not result.data and not preview_only:
        raise EmptyResultError("No valid data rows found")

    LOG.info("Parsed %d valid data points (%d rows skipped)", len(result.data), len(result.skipped))


def parse_csv(csv_text: str, preview_only: bool = False) -> ParseResult:
    """Import a sales CSV document.

    Structural problems are reported through ``error``/``failure`` on the
    returned result rather than raised; call ``raise_for_error()`` to turn
    them into exceptions. In preview mode only headers and well-formed raw
    rows are returned.
    """
    result = ParseResult()
    try:
        _populate(result, csv_text, preview_only)
    except ForecastDataError as exc:
        result.fail(exc)
    except Exception:  # noqa: BLE001
        LOG.exception("CSV parsing error")
        result.fail(FormatError("Failed to parse CSV data"))
    return result


def normalize_series(points: Iterable[DataPoint]) -> List[DataPoint]:
    dated: List[Tuple[pd.Timestamp, DataPoint]] = []
    for point in points:
        timestamp = to_timestamp(point.date)
        if timestamp is not None:
            dated.append((timestamp, point))

    if not dated:
        LOG.warning("No valid dates found in data")
        return []

    dated.sort(key=lambda item: item[0])
    times = [timestamp for timestamp, _ in dated]

    latest_by_month: Dict[Tuple[int, int], Tuple[pd.Timestamp, DataPoint]] = {}
    for timestamp, point in dated:
        key = (timestamp.year, timestamp.month)
        current = latest_by_month.get(key)
        if current is None or current[0] < timestamp:
            latest_by_month[key] = (timestamp, point)

    normalized: List[DataPoint] = []
    for month in pd.date_range(month_start(times[0]), month_start(times[-1]), freq="MS"):
        observed = latest_by_month.get((month.year, month.month))
        if observed is not None:
            normalized.append(replace(observed[1], date=month))
            continue

        position = bisect_left(times, month)
        before = dated[position - 1] if position > 0 else None
        after = dated[position] if position < len(dated) else None
        normalized.append(_fill_month(month, before, after))

    return normalized


def _fill_month(
    month: pd.Timestamp,
    before: Optional[Tuple[pd.Timestamp, DataPoint]],
    after: Optional[Tuple[pd.Timestamp, DataPoint]],
) -> DataPoint:
    value: Optional[float] = None
    if before and after and before[1].actual is not None and after[1].actual is not None:
        ratio = (month - before[0]) / (after[0] - before[0])
        value = round_half_up(before[1].actual + ratio * (after[1].actual - before[1].actual))
    elif before and before[1].actual is not None:
        value = before[1].actual
    elif after and after[1].actual is not None:
        value = after[1].actual

    category = (before[1].category if before else None) or (after[1].category if after else None)
    LOG.debug("Filled missing month %s with %s", month.date(), value)
    return DataPoint(date=month, actual=value, forecast=None, category=category)


def points_to_frame(points: Iterable[DataPoint]) -> pd.DataFrame:
    records = [
        {
            "date": point.date,
            "actual": point.actual,
            "forecast": point.forecast,
            "category": point.category,
        }
        for point in points
    ]
    return pd.DataFrame.from_records(records, columns=list(FRAME_COLUMNS))
