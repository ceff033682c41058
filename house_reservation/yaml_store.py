from __future__ import annotations

import logging
import shutil
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

import yaml

from .booking import (
    ReservationConflictError,
    ReservationNotFoundError,
    ReservationStorageError,
    StayPeriod,
    find_conflict,
    format_calendar_date,
)
from .store import ReservationRecord, ReservationStore, sort_records

logger = logging.getLogger(__name__)

_DIRECTORY_LOCKS: dict[Path, threading.RLock] = {}
_DIRECTORY_LOCKS_GUARD = threading.Lock()


def _lock_for(base_dir: Path) -> threading.RLock:
    key = base_dir.resolve()
    with _DIRECTORY_LOCKS_GUARD:
        if key not in _DIRECTORY_LOCKS:
            _DIRECTORY_LOCKS[key] = threading.RLock()
        return _DIRECTORY_LOCKS[key]


class ReservationYamlRepository(ReservationStore):
    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.sequence_file = self.base_dir / "reservation_sequence.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._ensure_files()
        self._lock = _lock_for(self.base_dir)

    def _ensure_files(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            for path in (self.reservations_file, self.log_file):
                if not path.exists():
                    path.write_text("[]\n", encoding="utf-8")
            if not self.sequence_file.exists():
                self.sequence_file.write_text("next_id: 1\n", encoding="utf-8")
        except OSError as error:
            raise ReservationStorageError(f"Failed to prepare data directory: {self.base_dir}") from error

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def _load_yaml(self, path: Path) -> Any:
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            raise ReservationStorageError(f"Failed to read YAML file: {path}") from error

    def _read_reservation_rows(self) -> list[dict[str, Any]]:
        payload = self._load_yaml(self.reservations_file)
        if payload is None:
            return []
        if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
            raise ReservationStorageError(f"Reservation file is not a list of mappings: {self.reservations_file}")
        return payload

    def _read_records(self) -> list[ReservationRecord]:
        rows = self._read_reservation_rows()
        try:
            return [ReservationRecord.from_dict(row) for row in rows]
        except (KeyError, TypeError, ValueError) as error:
            raise ReservationStorageError(f"Reservation file holds a malformed row: {self.reservations_file}") from error

    def _write_yaml(self, path: Path, payload: Any) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _write_records(self, records: list[ReservationRecord]) -> None:
        self._write_yaml(self.reservations_file, [record.to_dict() for record in records])

    def _next_reservation_id(self, records: list[ReservationRecord]) -> int:
        payload = self._load_yaml(self.sequence_file)
        next_id = payload.get("next_id", 1) if isinstance(payload, dict) else 1
        if not isinstance(next_id, int) or next_id < 1:
            raise ReservationStorageError(f"Reservation sequence is corrupted: {self.sequence_file}")

        # Ids are never reused, even if the sequence file lags behind the data.
        highest = max((record.reservation_id for record in records), default=0)
        next_id = max(next_id, highest + 1)
        self._write_yaml(self.sequence_file, {"next_id": next_id + 1})
        return next_id

    def _read_event_rows(self) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(self.log_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            return self._recover_corrupted_log(error)

        if payload is None:
            return []
        if not isinstance(payload, list):
            return self._recover_corrupted_log(ValueError("top-level YAML is not a list"))
        return [row for row in payload if isinstance(row, dict)]

    def _recover_corrupted_log(self, error: Exception) -> list[dict[str, Any]]:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S%f")
        backup_path = self.log_file.with_name(f"{self.log_file.stem}.corrupt.{timestamp}{self.log_file.suffix}")
        try:
            if self.log_file.exists():
                shutil.copy2(self.log_file, backup_path)
        except OSError:
            logger.warning("Could not back up corrupted event log %s", self.log_file)

        logger.warning("Event log %s was unreadable (%s); starting a new one", self.log_file, error)
        rows = [
            {
                "event_time": datetime.now().isoformat(timespec="seconds"),
                "event_type": "YAML_RECOVERED",
                "payload": {"file": self.log_file.name, "backup": backup_path.name, "reason": str(error)},
            }
        ]
        self._write_yaml(self.log_file, rows)
        return rows

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        # Called after the reservation file is saved; a log failure must not undo that.
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        try:
            events = self._read_event_rows()
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_yaml(self.log_file, events)
        except ReservationStorageError as error:
            logger.warning("Could not record %s in %s: %s", event_type, self.log_file, error)

    def get_events(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._read_event_rows()

    def find_all(self, order_by: str = "start_date") -> list[ReservationRecord]:
        with self._lock:
            return sort_records(self._read_records(), order_by)

    def find_by_id(self, reservation_id: int) -> ReservationRecord | None:
        with self._lock:
            for record in self._read_records():
                if record.reservation_id == reservation_id:
                    return record
        return None

    def insert(self, name: str, start_date: date, end_date: date, created_at: datetime) -> ReservationRecord:
        with self._lock:
            records = self._read_records()
            conflict = find_conflict(StayPeriod(start_date, end_date), records)
            if conflict is not None:
                raise ReservationConflictError(conflict=conflict)

            record = ReservationRecord(
                reservation_id=self._next_reservation_id(records),
                name=name,
                start_date=start_date,
                end_date=end_date,
                created_at=created_at,
            )
            records.append(record)
            self._write_records(records)

            self._log_event(
                "RESERVATION_CREATED",
                {
                    "reservation_id": record.reservation_id,
                    "name": name,
                    "start_date": format_calendar_date(start_date),
                    "end_date": format_calendar_date(end_date),
                },
                created_at,
            )
            return record

    def replace(self, reservation_id: int, name: str, start_date: date, end_date: date) -> ReservationRecord:
        with self._lock:
            records = self._read_records()
            found_index = -1
            for index, record in enumerate(records):
                if record.reservation_id == reservation_id:
                    found_index = index
                    break

            if found_index < 0:
                raise ReservationNotFoundError(f"예약을 찾을 수 없습니다: {reservation_id}")

            conflict = find_conflict(StayPeriod(start_date, end_date), records, exclude_id=reservation_id)
            if conflict is not None:
                raise ReservationConflictError(conflict=conflict)

            current = records[found_index]
            updated = ReservationRecord(
                reservation_id=current.reservation_id,
                name=name,
                start_date=start_date,
                end_date=end_date,
                created_at=current.created_at,
            )
            records[found_index] = updated
            self._write_records(records)

            self._log_event(
                "RESERVATION_UPDATED",
                {
                    "reservation_id": reservation_id,
                    "name": name,
                    "start_date": format_calendar_date(start_date),
                    "end_date": format_calendar_date(end_date),
                },
            )
            return updated

    def remove(self, reservation_id: int) -> bool:
        with self._lock:
            records = self._read_records()
            remaining = [record for record in records if record.reservation_id != reservation_id]
            if len(remaining) == len(records):
                return False

            self._write_records(remaining)
            self._log_event("RESERVATION_DELETED", {"reservation_id": reservation_id})
            return True

