from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

_CALENDAR_DATE_RE = re.compile(
    r"^\s*(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?\s*$",
    re.ASCII,
)

CONFLICT_MESSAGE = "선택한 기간에 이미 예약이 있습니다."


class ReservationError(Exception):
    pass


class InvalidInputError(ReservationError, ValueError):
    pass


class ReservationNotFoundError(ReservationError, LookupError):
    pass


class ReservationConflictError(ReservationError, ValueError):
    def __init__(self, message: str = CONFLICT_MESSAGE, conflict: Any = None) -> None:
        super().__init__(message)
        self.conflict = conflict


class ReservationStorageError(ReservationError, RuntimeError):
    pass


def to_calendar_date(value: date | datetime | str) -> date:
    """Reduce a date-like value to a plain calendar day.

    ``datetime`` values keep their own wall-clock date; no timezone conversion
    happens, so ``2024-01-05T00:00:00Z`` stays on the 5th whatever the server
    timezone is. Strings are ``YYYY-MM-DD``, optionally followed by an ISO
    ``T`` time part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"지원하지 않는 날짜 값입니다: {value!r}")

    match = _CALENDAR_DATE_RE.match(value)
    if match is None:
        raise InvalidInputError(f"날짜는 YYYY-MM-DD 형식이어야 합니다: {value!r}")
    try:
        return date(int(match["year"]), int(match["month"]), int(match["day"]))
    except ValueError as error:
        raise InvalidInputError(f"존재하지 않는 날짜입니다: {value!r}") from error


def format_calendar_date(value: date) -> str:
    return to_calendar_date(value).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class StayPeriod:
    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date >= self.end_date:
            raise InvalidInputError("종료일은 시작일보다 늦어야 합니다.")

    @staticmethod
    def from_values(start: date | datetime | str, end: date | datetime | str) -> "StayPeriod":
        return StayPeriod(to_calendar_date(start), to_calendar_date(end))

    def overlaps(self, start_date: date, end_date: date) -> bool:
        return has_date_overlap(self.start_date, self.end_date, start_date, end_date)


def has_date_overlap(new_start: date, new_end: date, exist_start: date, exist_end: date) -> bool:
    """Return True when two stays share at least one calendar day.

    Intervals are closed: [start, end]. A stay ending on the 5th and another
    starting on the 5th conflict.
    """
    return new_start <= exist_end and exist_start <= new_end


def find_conflict(period: StayPeriod, existing: Iterable[Any], exclude_id: int | None = None) -> Any:
    """Return the first record in ``existing`` whose stay overlaps ``period``."""
    for record in existing:
        if exclude_id is not None and record.reservation_id == exclude_id:
            continue
        if period.overlaps(record.start_date, record.end_date):
            return record
    return None
