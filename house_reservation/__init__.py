from .booking import (
	InvalidInputError,
	ReservationConflictError,
	ReservationError,
	ReservationNotFoundError,
	ReservationStorageError,
	StayPeriod,
	format_calendar_date,
	has_date_overlap,
	to_calendar_date,
)
from .service import ReservationService
from .store import InMemoryReservationStore, ReservationRecord, ReservationStore
from .yaml_store import ReservationYamlRepository

__all__ = [
	"InvalidInputError",
	"ReservationConflictError",
	"ReservationError",
	"ReservationNotFoundError",
	"ReservationStorageError",
	"StayPeriod",
	"format_calendar_date",
	"has_date_overlap",
	"to_calendar_date",
	"ReservationService",
	"InMemoryReservationStore",
	"ReservationRecord",
	"ReservationStore",
	"ReservationYamlRepository",
]
