from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.datetime_utils import parse_hhmm
from ..common.http import current_identity, json_body, login_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import WorkSchedule
from .permissions import permissions_for
from .service import employee_to_dict

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        identity = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session["employee_id"] = identity.employee_id
        session["role"] = identity.role.value
        logger.info("Employee %s logged in", identity.employee_id)
        return jsonify({"success": True, "employee_id": identity.employee_id, "role": identity.role.value})

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        identity = current_identity()
        employee = container.employee_service.get_active(identity.employee_id)
        body = employee_to_dict(employee)
        body["permissions"] = sorted(p.value for p in permissions_for(identity))
        return jsonify(body)

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    @login_required
    def list_employees():
        employees = container.employee_service.list_active(current_identity())
        return jsonify([employee_to_dict(e) for e in employees])

    @app.route("/api/employees", methods=["POST"], endpoint="create_employee")
    @login_required
    def create_employee():
        data = json_body()
        schedule_raw = data.get("work_schedule") or {}
        try:
            role = Role(data.get("role", Role.EMPLOYEE.value))
            weekend_days = tuple(int(d) for d in schedule_raw.get("weekend_days", WorkSchedule().weekend_days))
        except (TypeError, ValueError):
            raise ValidationError("Invalid role or weekend days")

        schedule = WorkSchedule(
            start_time=parse_hhmm(schedule_raw["start_time"], "start_time") if schedule_raw.get("start_time") else None,
            end_time=parse_hhmm(schedule_raw["end_time"], "end_time") if schedule_raw.get("end_time") else None,
            weekend_days=weekend_days,
        )
        employee_id = container.employee_service.create_employee(
            current_identity(),
            name=data.get("name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=role,
            base_salary=data.get("base_salary"),
            allowances=data.get("allowances", 0),
            job_title=data.get("job_title"),
            department=data.get("department"),
            work_schedule=schedule,
        )
        return jsonify({"success": True, "employee_id": employee_id}), 201
