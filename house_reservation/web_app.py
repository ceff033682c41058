from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .booking import (
    InvalidInputError,
    ReservationConflictError,
    ReservationError,
    ReservationNotFoundError,
    format_calendar_date,
)
from .config import ProductionConfig, config
from .service import ReservationService
from .store import ReservationRecord, ReservationStore
from .yaml_store import ReservationYamlRepository


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    config_name: str | None = None,
    store: ReservationStore | None = None,
) -> Flask:
    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "default")

    config_class = config.get(config_name, config["default"])
    if config_class is ProductionConfig and data_dir is None:
        config_class.validate()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if data_dir is not None:
        app.config["DATA_DIR"] = str(data_dir)

    configure_logging(app)

    repository = store if store is not None else ReservationYamlRepository(app.config["DATA_DIR"])
    service = ReservationService(repository, clock=now_provider)
    app.extensions["reservation_service"] = service

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ALLOW_ORIGIN"]
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(ReservationError)
    def handle_reservation_error(error: ReservationError) -> Any:
        if isinstance(error, ReservationConflictError):
            conflict = error.conflict
            return (
                jsonify(
                    {
                        "ok": False,
                        "message": str(error),
                        "conflict": _serialize_reservation(conflict) if conflict is not None else None,
                    }
                ),
                400,
            )
        if isinstance(error, InvalidInputError):
            return jsonify({"ok": False, "message": str(error)}), 400
        if isinstance(error, ReservationNotFoundError):
            return jsonify({"ok": False, "message": "예약을 찾을 수 없습니다."}), 404

        app.logger.error("Reservation storage failure: %s", error)
        return jsonify({"ok": False, "message": "예약 저장소 오류가 발생했습니다."}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Any:
        if isinstance(error, HTTPException):
            return jsonify({"ok": False, "message": error.description}), error.code
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"ok": False, "message": "알 수 없는 오류가 발생했습니다."}), 500

    @app.get("/api/reservations")
    def list_reservations() -> Any:
        records = service.list_reservations()
        return jsonify({"ok": True, "reservations": [_serialize_reservation(record) for record in records]})

    @app.get("/api/reservations/availability")
    def check_availability() -> Any:
        conflict = service.check_availability(
            request.args.get("startDate"),
            request.args.get("endDate"),
            exclude_id=request.args.get("excludeId"),
        )
        return jsonify(
            {
                "ok": True,
                "available": conflict is None,
                "conflict": _serialize_reservation(conflict) if conflict is not None else None,
            }
        )

    @app.get("/api/reservations/<reservation_id>")
    def get_reservation(reservation_id: str) -> Any:
        record = service.get_reservation(reservation_id)
        return jsonify({"ok": True, "reservation": _serialize_reservation(record)})

    @app.post("/api/reservations")
    def create_reservation() -> Any:
        payload = _read_reservation_payload()
        created = service.create_reservation(payload.get("name"), payload.get("startDate"), payload.get("endDate"))
        return jsonify({"ok": True, "reservation": _serialize_reservation(created)})

    @app.put("/api/reservations/<reservation_id>")
    def update_reservation(reservation_id: str) -> Any:
        payload = _read_reservation_payload()
        updated = service.update_reservation(
            reservation_id,
            payload.get("name"),
            payload.get("startDate"),
            payload.get("endDate"),
        )
        return jsonify({"ok": True, "reservation": _serialize_reservation(updated)})

    @app.delete("/api/reservations/<reservation_id>")
    def delete_reservation(reservation_id: str) -> Any:
        service.delete_reservation(reservation_id)
        return jsonify({"ok": True, "success": True, "message": "예약이 성공적으로 취소되었습니다."})

    return app


def configure_logging(app: Flask) -> None:
    if not app.debug and not app.testing:
        log_dir = Path(app.config["LOG_DIR"])
        log_dir.mkdir(parents=True, exist_ok=True)

        log_path = (log_dir / "house_reservation.log").resolve()
        package_logger = logging.getLogger("house_reservation")
        if any(
            isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path
            for handler in package_logger.handlers
        ):
            return

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s [in %(pathname)s:%(lineno)d]")
        )
        file_handler.setLevel(logging.INFO)

        # app.logger ("house_reservation.web_app") propagates here too.
        package_logger.addHandler(file_handler)
        package_logger.setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info("%s startup", app.config["APP_NAME"])
    else:
        app.logger.setLevel(logging.DEBUG)


def _read_reservation_payload() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInputError("요청 본문은 name, startDate, endDate를 담은 JSON 객체여야 합니다.")
    return payload


def _serialize_reservation(record: ReservationRecord) -> dict[str, Any]:
    return {
        "id": record.reservation_id,
        "name": record.name,
        "startDate": format_calendar_date(record.start_date),
        "endDate": format_calendar_date(record.end_date),
        "createdAt": record.created_at.isoformat(timespec="seconds"),
    }


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)
