import itertools
import tempfile
import threading
import unittest
from datetime import date, datetime, timedelta
from pathlib import Path

from house_reservation import (
    InMemoryReservationStore,
    InvalidInputError,
    ReservationConflictError,
    ReservationNotFoundError,
    ReservationService,
    ReservationYamlRepository,
)
from house_reservation.booking import CONFLICT_MESSAGE

NOW = datetime(2023, 12, 20, 9, 0)


class TestReservationService(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryReservationStore()
        self.service = ReservationService(self.store, clock=lambda: NOW)

    def test_create_then_get_round_trip(self) -> None:
        created = self.service.create_reservation("  김민수  ", "2024-01-01", "2024-01-05")

        self.assertEqual(created.name, "김민수")
        self.assertEqual(created.start_date, date(2024, 1, 1))
        self.assertEqual(created.end_date, date(2024, 1, 5))
        self.assertEqual(created.created_at, NOW)
        self.assertEqual(self.service.get_reservation(created.reservation_id), created)

    def test_shared_endpoint_is_a_conflict(self) -> None:
        existing = self.service.create_reservation("A", "2024-01-01", "2024-01-05")

        with self.assertRaises(ReservationConflictError) as context:
            self.service.create_reservation("B", "2024-01-05", "2024-01-10")

        self.assertEqual(context.exception.conflict, existing)
        self.assertEqual(str(context.exception), CONFLICT_MESSAGE)
        self.assertEqual(len(self.service.list_reservations()), 1)

    def test_next_day_start_is_accepted(self) -> None:
        self.service.create_reservation("A", "2024-01-01", "2024-01-05")
        created = self.service.create_reservation("B", "2024-01-06", "2024-01-10")
        self.assertEqual(created.start_date, date(2024, 1, 6))

    def test_conflict_iff_closed_intervals_intersect(self) -> None:
        base = date(2024, 1, 10)
        existing = (base, base + timedelta(days=3))
        offsets = range(-5, 9)
        for start_offset, length in itertools.product(offsets, range(1, 5)):
            start = base + timedelta(days=start_offset)
            end = start + timedelta(days=length)
            service = ReservationService(InMemoryReservationStore(), clock=lambda: NOW)
            service.create_reservation("A", *existing)
            expected_conflict = start <= existing[1] and existing[0] <= end

            with self.subTest(start=start, end=end):
                if expected_conflict:
                    with self.assertRaises(ReservationConflictError):
                        service.create_reservation("B", start, end)
                else:
                    service.create_reservation("B", start, end)

    def test_list_is_ordered_by_start_date(self) -> None:
        self.service.create_reservation("March", "2024-03-01", "2024-03-04")
        self.service.create_reservation("January", "2024-01-01", "2024-01-04")
        self.service.create_reservation("February", "2024-02-01", "2024-02-04")

        names = [record.name for record in self.service.list_reservations()]
        self.assertEqual(names, ["January", "February", "March"])

    def test_invalid_create_inputs(self) -> None:
        cases = [
            ("A", "2024-01-05", "2024-01-05"),
            ("A", "2024-01-10", "2024-01-05"),
            ("   ", "2024-01-01", "2024-01-05"),
            (None, "2024-01-01", "2024-01-05"),
            ("A", "not-a-date", "2024-01-05"),
            ("A", "2024-01-01", None),
        ]
        for name, start, end in cases:
            with self.subTest(name=name, start=start, end=end):
                with self.assertRaises(InvalidInputError):
                    self.service.create_reservation(name, start, end)
        self.assertEqual(self.service.list_reservations(), [])

    def test_validation_messages_are_korean(self) -> None:
        with self.assertRaises(InvalidInputError) as context:
            self.service.create_reservation("   ", "2024-01-01", "2024-01-05")
        self.assertEqual(str(context.exception), "예약자 이름을 입력해주세요.")

        with self.assertRaises(InvalidInputError) as context:
            self.service.create_reservation("A", "2024-01-05", "2024-01-01")
        self.assertEqual(str(context.exception), "종료일은 시작일보다 늦어야 합니다.")

    def test_update_with_own_interval_succeeds(self) -> None:
        created = self.service.create_reservation("A", "2024-01-01", "2024-01-05")
        updated = self.service.update_reservation(created.reservation_id, "A (2)", "2024-01-01", "2024-01-05")

        self.assertEqual(updated.reservation_id, created.reservation_id)
        self.assertEqual(updated.created_at, created.created_at)
        self.assertEqual(updated.name, "A (2)")

    def test_update_can_grow_over_its_own_span(self) -> None:
        created = self.service.create_reservation("A", "2024-01-03", "2024-01-05")
        updated = self.service.update_reservation(created.reservation_id, "A", "2024-01-01", "2024-01-08")
        self.assertEqual((updated.start_date, updated.end_date), (date(2024, 1, 1), date(2024, 1, 8)))

    def test_update_conflicting_with_other_is_rejected(self) -> None:
        first = self.service.create_reservation("A", "2024-01-01", "2024-01-05")
        self.service.create_reservation("B", "2024-01-10", "2024-01-12")

        with self.assertRaises(ReservationConflictError):
            self.service.update_reservation(first.reservation_id, "A", "2024-01-03", "2024-01-10")

        self.assertEqual(self.service.get_reservation(first.reservation_id), first)

    def test_update_unknown_id_raises_not_found(self) -> None:
        with self.assertRaises(ReservationNotFoundError):
            self.service.update_reservation(99, "A", "2024-01-01", "2024-01-05")

    def test_delete_then_get_raises_not_found(self) -> None:
        created = self.service.create_reservation("A", "2024-01-01", "2024-01-05")

        self.assertTrue(self.service.delete_reservation(created.reservation_id))
        with self.assertRaises(ReservationNotFoundError):
            self.service.get_reservation(created.reservation_id)
        with self.assertRaises(ReservationNotFoundError):
            self.service.delete_reservation(created.reservation_id)

    def test_deleted_period_can_be_booked_again(self) -> None:
        created = self.service.create_reservation("A", "2024-01-01", "2024-01-05")
        self.service.delete_reservation(created.reservation_id)
        rebooked = self.service.create_reservation("B", "2024-01-01", "2024-01-05")
        self.assertNotEqual(rebooked.reservation_id, created.reservation_id)

    def test_reservation_id_validation(self) -> None:
        for value in [0, -1, "abc", "1.5", "", None, True, 1.0]:
            with self.subTest(value=value):
                with self.assertRaises(InvalidInputError):
                    self.service.get_reservation(value)

    def test_string_id_is_accepted(self) -> None:
        created = self.service.create_reservation("A", "2024-01-01", "2024-01-05")
        self.assertEqual(self.service.get_reservation(str(created.reservation_id)), created)

    def test_check_availability_hint(self) -> None:
        existing = self.service.create_reservation("A", "2024-01-01", "2024-01-05")

        self.assertEqual(self.service.check_availability("2024-01-04", "2024-01-08"), existing)
        self.assertIsNone(self.service.check_availability("2024-01-06", "2024-01-08"))
        self.assertIsNone(
            self.service.check_availability("2024-01-04", "2024-01-08", exclude_id=str(existing.reservation_id))
        )


class TestConcurrentBooking(unittest.TestCase):
    def _race(self, make_service) -> tuple[list, list]:
        barrier = threading.Barrier(8)
        successes: list = []
        conflicts: list = []
        lock = threading.Lock()

        def worker(index: int) -> None:
            service = make_service()
            barrier.wait()
            try:
                created = service.create_reservation(f"guest-{index}", "2024-07-01", f"2024-07-0{2 + index % 3}")
            except ReservationConflictError as error:
                with lock:
                    conflicts.append(error)
            else:
                with lock:
                    successes.append(created)

        threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return successes, conflicts

    def test_overlapping_creates_on_shared_memory_store(self) -> None:
        store = InMemoryReservationStore()
        successes, conflicts = self._race(lambda: ReservationService(store))

        self.assertEqual(len(successes), 1)
        self.assertEqual(len(conflicts), 7)
        self.assertEqual(len(store.find_all()), 1)

    def test_overlapping_creates_on_shared_yaml_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            ReservationYamlRepository(data_dir)
            successes, conflicts = self._race(lambda: ReservationService(ReservationYamlRepository(data_dir)))

            self.assertEqual(len(successes), 1)
            self.assertEqual(len(conflicts), 7)
            self.assertEqual(len(ReservationYamlRepository(data_dir).find_all()), 1)


if __name__ == "__main__":
    unittest.main()
