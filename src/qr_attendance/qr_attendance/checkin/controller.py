from __future__ import annotations

import io
from datetime import timedelta
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request, send_file

from ..common.datetime_utils import local_date, now_utc, parse_iso_date
from ..common.http import current_identity, json_body, login_required
from ..common.validators import require_int, require_number
from ..core import constants
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Coordinate, outcome_to_dict, record_to_dict, summary_to_dict


def _parse_location(raw: Any) -> Optional[Coordinate]:
    # The client sends null when the device could not get a fix in time.
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("location must be an object or null")
    return Coordinate(
        latitude=require_number(raw.get("latitude"), "location.latitude", minimum=-90, maximum=90),
        longitude=require_number(raw.get("longitude"), "location.longitude", minimum=-180, maximum=180),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/qr/current", methods=["GET"], endpoint="qr_current")
    @login_required
    def qr_current():
        issued = container.checkin_service.issue_token(current_identity())
        return jsonify(
            {
                "token": issued.token,
                "issued_at": issued.issued_at.isoformat(),
                "expires_at": issued.expires_at.isoformat(),
                "lifespan_seconds": int((issued.expires_at - issued.issued_at).total_seconds()),
            }
        )

    @app.route("/api/qr/current.png", methods=["GET"], endpoint="qr_current_png")
    @login_required
    def qr_current_png():
        issued = container.checkin_service.issue_token(current_identity())
        png = container.checkin_service.render_qr_png(issued.token)
        resp = send_file(io.BytesIO(png), mimetype="image/png", max_age=0)
        resp.headers["Cache-Control"] = "no-store"
        resp.headers["X-QR-Expires-At"] = issued.expires_at.isoformat()
        return resp

    @app.route("/api/scan/config", methods=["GET"], endpoint="scan_config")
    @login_required
    def scan_config():
        policy = container.policy_service.get_current_policy()
        return jsonify(
            {
                "geofence_enabled": policy.geofence_enabled,
                "geolocation_timeout_seconds": int(
                    current_app.config.get(
                        "GEOLOCATION_TIMEOUT_SECONDS", constants.DEFAULT_GEOLOCATION_TIMEOUT_SECONDS
                    )
                ),
            }
        )

    @app.route("/api/scan", methods=["POST"], endpoint="scan")
    @login_required
    def scan():
        data = json_body()
        token = data.get("token")
        if not isinstance(token, str) or not token.strip():
            raise ValidationError("token is required")

        outcome = container.checkin_service.scan(current_identity(), token.strip(), _parse_location(data.get("location")))
        return jsonify(outcome_to_dict(outcome)), (422 if outcome.rejected else 200)

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def attendance_today():
        record = container.checkin_service.today(current_identity())
        return jsonify({"record": record_to_dict(record) if record else None})

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @login_required
    def attendance_summary():
        summary = container.checkin_service.daily_summary(current_identity())
        return jsonify(summary_to_dict(summary))

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        identity = current_identity()
        employee_id: Optional[int] = identity.employee_id
        if request.args.get("employee_id"):
            employee_id = require_int(request.args["employee_id"], "employee_id", minimum=1)
        elif request.args.get("all") in {"1", "true"}:
            employee_id = None

        if request.args.get("end"):
            end = parse_iso_date(request.args["end"])
        else:
            end = local_date(now_utc(), container.policy_service.get_current_policy().tz)
        if request.args.get("start"):
            start = parse_iso_date(request.args["start"])
        else:
            start = end - timedelta(days=constants.DEFAULT_HISTORY_DAYS - 1)

        records = container.checkin_service.history(identity, start=start, end=end, employee_id=employee_id)
        return jsonify({"start": start.isoformat(), "end": end.isoformat(), "records": [record_to_dict(r) for r in records]})

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def attendance_mark():
        data = json_body()
        try:
            status = AttendanceStatus(data.get("status"))
        except ValueError:
            raise ValidationError("status must be 'absent' or 'on_leave'")

        record = container.checkin_service.mark_day(
            current_identity(),
            employee_id=require_int(data.get("employee_id"), "employee_id", minimum=1),
            work_date=parse_iso_date(data.get("date") or ""),
            status=status,
        )
        return jsonify({"success": True, "record": record_to_dict(record)}), 201
