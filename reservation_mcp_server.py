from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from house_reservation import ReservationRecord, ReservationService, ReservationYamlRepository

mcp = FastMCP(
    "House Reservation MCP Server",
    instructions="Browse and manage vacation-house reservations. Dates are YYYY-MM-DD calendar days.",
    json_response=True,
)

DATA_DIR = Path(os.environ.get("RESERVATION_DATA_DIR") or Path(__file__).parent / "data")
SERVICE = ReservationService(ReservationYamlRepository(DATA_DIR))


@mcp.resource("reservation://reservations")
async def reservations_resource() -> list[dict[str, Any]]:
    """All reservations ordered by start date."""
    return [record.to_dict() for record in SERVICE.list_reservations()]


@mcp.tool()
def list_reservations() -> list[dict[str, Any]]:
    """Return every reservation ordered by start date."""
    return [record.to_dict() for record in SERVICE.list_reservations()]


@mcp.tool()
def get_reservation(reservation_id: int) -> dict[str, Any]:
    """Return one reservation by id."""
    return SERVICE.get_reservation(reservation_id).to_dict()


@mcp.tool()
def create_reservation(name: str, start_date: str, end_date: str) -> dict[str, Any]:
    """Book the house for ``name`` from ``start_date`` to ``end_date`` (both inclusive)."""
    return SERVICE.create_reservation(name, start_date, end_date).to_dict()


@mcp.tool()
def update_reservation(reservation_id: int, name: str, start_date: str, end_date: str) -> dict[str, Any]:
    """Replace the guest name and dates of an existing reservation."""
    return SERVICE.update_reservation(reservation_id, name, start_date, end_date).to_dict()


@mcp.tool()
def cancel_reservation(reservation_id: int) -> dict[str, Any]:
    """Delete a reservation permanently."""
    SERVICE.delete_reservation(reservation_id)
    return {"reservation_id": reservation_id, "cancelled": True}


@mcp.tool()
def check_availability(start_date: str, end_date: str) -> dict[str, Any]:
    """Tell whether the stay looks free; booking still re-checks."""
    conflict: ReservationRecord | None = SERVICE.check_availability(start_date, end_date)
    return {"available": conflict is None, "conflict": conflict.to_dict() if conflict is not None else None}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
