from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable

from .booking import (
    InvalidInputError,
    ReservationConflictError,
    ReservationNotFoundError,
    StayPeriod,
    format_calendar_date,
)
from .store import ReservationRecord, ReservationStore

logger = logging.getLogger(__name__)

DateInput = date | datetime | str


class ReservationService:
    """Reservation lifecycle for the house calendar.

    Every operation reads the store afresh. Writes run inside
    ``store.transaction()`` so the conflict scan and the write that follows it
    cannot interleave with another writer.
    """

    def __init__(self, store: ReservationStore, clock: Callable[[], datetime] | None = None) -> None:
        self._store = store
        self._clock: Callable[[], datetime] = clock or datetime.now

    def list_reservations(self) -> list[ReservationRecord]:
        return self._store.find_all(order_by="start_date")

    def get_reservation(self, reservation_id: Any) -> ReservationRecord:
        return self._require(_parse_reservation_id(reservation_id))

    def create_reservation(self, name: Any, start_date: DateInput, end_date: DateInput) -> ReservationRecord:
        clean_name = _normalize_name(name)
        period = StayPeriod.from_values(start_date, end_date)

        with self._store.transaction():
            self._ensure_available(period)
            record = self._store.insert(clean_name, period.start_date, period.end_date, created_at=self._clock())

        logger.info(
            "Reservation %s created for %s (%s ~ %s)",
            record.reservation_id,
            record.name,
            format_calendar_date(record.start_date),
            format_calendar_date(record.end_date),
        )
        return record

    def update_reservation(
        self,
        reservation_id: Any,
        name: Any,
        start_date: DateInput,
        end_date: DateInput,
    ) -> ReservationRecord:
        parsed_id = _parse_reservation_id(reservation_id)
        clean_name = _normalize_name(name)
        period = StayPeriod.from_values(start_date, end_date)

        with self._store.transaction():
            self._require(parsed_id)
            self._ensure_available(period, exclude_id=parsed_id)
            updated = self._store.replace(parsed_id, clean_name, period.start_date, period.end_date)

        logger.info(
            "Reservation %s updated (%s ~ %s)",
            parsed_id,
            format_calendar_date(updated.start_date),
            format_calendar_date(updated.end_date),
        )
        return updated

    def delete_reservation(self, reservation_id: Any) -> bool:
        parsed_id = _parse_reservation_id(reservation_id)
        with self._store.transaction():
            if not self._store.remove(parsed_id):
                raise ReservationNotFoundError(f"예약을 찾을 수 없습니다: {parsed_id}")

        logger.info("Reservation %s deleted", parsed_id)
        return True

    def check_availability(
        self,
        start_date: DateInput,
        end_date: DateInput,
        exclude_id: Any = None,
    ) -> ReservationRecord | None:
        """Return the reservation blocking the stay, or None when it looks free.

        This is only a hint for the calendar view; create and update re-check
        inside a transaction.
        """
        period = StayPeriod.from_values(start_date, end_date)
        parsed_exclude = _parse_reservation_id(exclude_id) if exclude_id not in (None, "") else None
        return self._store.find_conflicting(period.start_date, period.end_date, exclude_id=parsed_exclude)

    def _require(self, reservation_id: int) -> ReservationRecord:
        record = self._store.find_by_id(reservation_id)
        if record is None:
            raise ReservationNotFoundError(f"예약을 찾을 수 없습니다: {reservation_id}")
        return record

    def _ensure_available(self, period: StayPeriod, exclude_id: int | None = None) -> None:
        conflict = self._store.find_conflicting(period.start_date, period.end_date, exclude_id=exclude_id)
        if conflict is not None:
            logger.warning(
                "Rejected %s ~ %s: overlaps reservation %s",
                format_calendar_date(period.start_date),
                format_calendar_date(period.end_date),
                conflict.reservation_id,
            )
            raise ReservationConflictError(conflict=conflict)


def _parse_reservation_id(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"잘못된 예약 ID입니다: {value!r}")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise InvalidInputError(f"잘못된 예약 ID입니다: {value!r}")

    if parsed < 1:
        raise InvalidInputError(f"잘못된 예약 ID입니다: {value!r}")
    return parsed


def _normalize_name(name: Any) -> str:
    if not isinstance(name, str):
        raise InvalidInputError("예약자 이름은 문자열이어야 합니다.")

    normalized = name.strip()
    if not normalized:
        raise InvalidInputError("예약자 이름을 입력해주세요.")
    return normalized
