from __future__ import annotations

import json
import sys
from urllib.parse import urlencode

from house_reservation.web_app import create_app


def _read_payload() -> dict:
    raw = sys.stdin.read().strip()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
        if isinstance(data, dict):
            return data
        return {}
    except json.JSONDecodeError:
        return {}


def _emit(status_code: int, payload: dict) -> None:
    print(json.dumps({"status": status_code, "json": payload}, ensure_ascii=False))


def main() -> int:
    if len(sys.argv) < 2:
        print("missing action", file=sys.stderr)
        return 2

    action = sys.argv[1]
    payload = _read_payload()

    app = create_app()
    client = app.test_client()
    reservation_id = str(payload.get("id", ""))
    body = {key: payload.get(key) for key in ("name", "startDate", "endDate")}

    if action == "list":
        response = client.get("/api/reservations")
    elif action == "get":
        response = client.get(f"/api/reservations/{reservation_id}")
    elif action == "availability":
        query = urlencode({key: value for key, value in body.items() if key != "name" and value is not None})
        response = client.get(f"/api/reservations/availability?{query}")
    elif action == "create":
        response = client.post("/api/reservations", json=body)
    elif action == "update":
        response = client.put(f"/api/reservations/{reservation_id}", json=body)
    elif action == "delete":
        response = client.delete(f"/api/reservations/{reservation_id}")
    else:
        print(f"unsupported action: {action}", file=sys.stderr)
        return 2

    _emit(response.status_code, response.get_json() or {})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
