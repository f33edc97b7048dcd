from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_identity, json_body, login_required
from ..container import Container
from .model import PayrollPeriod
from .service import parse_extras


def register(app: Flask, container: Container) -> None:
    def _period_and_extras():
        data = json_body()
        period = PayrollPeriod.parse(str(data.get("period") or ""))
        return period, parse_extras(data.get("extras"))

    @app.route("/api/payroll/preview", methods=["POST"], endpoint="payroll_preview")
    @login_required
    def payroll_preview():
        period, extras = _period_and_extras()
        records = container.payroll_service.generate(current_identity(), period, extras)
        return jsonify({"period": period.label, "records": [r.to_dict() for r in records]})

    @app.route("/api/payroll/disburse", methods=["POST"], endpoint="payroll_disburse")
    @login_required
    def payroll_disburse():
        period, extras = _period_and_extras()
        entry = container.payroll_service.disburse(current_identity(), period, extras)
        return jsonify({"success": True, "history": entry.to_dict()}), 201

    @app.route("/api/payroll/history", methods=["GET"], endpoint="payroll_history")
    @login_required
    def payroll_history():
        label = request.args.get("period")
        period = PayrollPeriod.parse(label) if label else None
        entries = container.payroll_service.history(current_identity(), period)
        return jsonify([e.to_dict() for e in entries])

    @app.route("/api/payroll/narrative", methods=["POST"], endpoint="payroll_narrative")
    @login_required
    def payroll_narrative():
        period, extras = _period_and_extras()
        details = container.payroll_service.narrative(current_identity(), period, extras)
        return jsonify({"period": period.label, "payrollDetails": details})
