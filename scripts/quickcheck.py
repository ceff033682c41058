from __future__ import annotations

import tempfile
import traceback
from datetime import date

from house_reservation import (
    ReservationConflictError,
    ReservationService,
    ReservationYamlRepository,
    format_calendar_date,
)


def main() -> int:
    print("[INFO] House Reservation Quick Check")

    with tempfile.TemporaryDirectory() as temp_dir:
        repo = ReservationYamlRepository(temp_dir)
        service = ReservationService(repo)

        first = service.create_reservation("김민수", date(2024, 1, 1), date(2024, 1, 5))
        print(f"[OK] Booked #{first.reservation_id}: {format_calendar_date(first.start_date)}~{format_calendar_date(first.end_date)}")

        try:
            service.create_reservation("이서연", "2024-01-05", "2024-01-10")
        except ReservationConflictError as error:
            print(f"[OK] Shared check-in/check-out day rejected: {error}")
        else:
            raise AssertionError("touching stays must conflict")

        second = service.create_reservation("이서연", "2024-01-06", "2024-01-10")
        print(f"[OK] Booked #{second.reservation_id}: {format_calendar_date(second.start_date)}~{format_calendar_date(second.end_date)}")

        service.update_reservation(first.reservation_id, "김민수", "2024-01-01", "2024-01-05")
        print("[OK] Re-saving a reservation with its own dates passes")

        service.delete_reservation(second.reservation_id)
        print(f"[OK] Reservations left: {len(service.list_reservations())}")
        print(f"[OK] Events logged: {len(repo.get_events())}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
