from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Iterator

from .booking import (
    ReservationConflictError,
    ReservationNotFoundError,
    StayPeriod,
    find_conflict,
    format_calendar_date,
    to_calendar_date,
)

ORDER_FIELDS = ("start_date", "end_date", "created_at", "reservation_id")


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: int
    name: str
    start_date: date
    end_date: date
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "name": self.name,
            "start_date": format_calendar_date(self.start_date),
            "end_date": format_calendar_date(self.end_date),
            "created_at": self.created_at.isoformat(timespec="seconds"),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            reservation_id=int(data["reservation_id"]),
            name=str(data["name"]),
            start_date=to_calendar_date(str(data["start_date"])),
            end_date=to_calendar_date(str(data["end_date"])),
            created_at=datetime.fromisoformat(str(data["created_at"])),
        )


class ReservationStore(ABC):
    """Persistence collaborator for reservations.

    ``insert`` and ``replace`` reject overlapping stays themselves, the way a
    database exclusion constraint would, and ``transaction`` serializes a
    caller's read-then-write sequence against other writers.
    """

    @abstractmethod
    def find_all(self, order_by: str = "start_date") -> list[ReservationRecord]:
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, reservation_id: int) -> ReservationRecord | None:
        raise NotImplementedError

    @abstractmethod
    def insert(self, name: str, start_date: date, end_date: date, created_at: datetime) -> ReservationRecord:
        raise NotImplementedError

    @abstractmethod
    def replace(self, reservation_id: int, name: str, start_date: date, end_date: date) -> ReservationRecord:
        raise NotImplementedError

    @abstractmethod
    def remove(self, reservation_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def transaction(self) -> Any:
        raise NotImplementedError

    def find_conflicting(
        self,
        start_date: date,
        end_date: date,
        exclude_id: int | None = None,
    ) -> ReservationRecord | None:
        return find_conflict(StayPeriod(start_date, end_date), self.find_all(), exclude_id=exclude_id)


def sort_records(records: list[ReservationRecord], order_by: str) -> list[ReservationRecord]:
    if order_by not in ORDER_FIELDS:
        raise ValueError(f"Unsupported order_by field: {order_by}")
    return sorted(records, key=lambda record: (getattr(record, order_by), record.reservation_id))


class InMemoryReservationStore(ReservationStore):
    def __init__(self) -> None:
        self._records: dict[int, ReservationRecord] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def find_all(self, order_by: str = "start_date") -> list[ReservationRecord]:
        with self._lock:
            return sort_records(list(self._records.values()), order_by)

    def find_by_id(self, reservation_id: int) -> ReservationRecord | None:
        with self._lock:
            return self._records.get(reservation_id)

    def insert(self, name: str, start_date: date, end_date: date, created_at: datetime) -> ReservationRecord:
        with self._lock:
            conflict = self.find_conflicting(start_date, end_date)
            if conflict is not None:
                raise ReservationConflictError(conflict=conflict)

            record = ReservationRecord(
                reservation_id=self._next_id,
                name=name,
                start_date=start_date,
                end_date=end_date,
                created_at=created_at,
            )
            self._records[record.reservation_id] = record
            self._next_id += 1
            return record

    def replace(self, reservation_id: int, name: str, start_date: date, end_date: date) -> ReservationRecord:
        with self._lock:
            current = self._records.get(reservation_id)
            if current is None:
                raise ReservationNotFoundError(f"예약을 찾을 수 없습니다: {reservation_id}")
            conflict = self.find_conflicting(start_date, end_date, exclude_id=reservation_id)
            if conflict is not None:
                raise ReservationConflictError(conflict=conflict)

            updated = replace(current, name=name, start_date=start_date, end_date=end_date)
            self._records[reservation_id] = updated
            return updated

    def remove(self, reservation_id: int) -> bool:
        with self._lock:
            return self._records.pop(reservation_id, None) is not None
