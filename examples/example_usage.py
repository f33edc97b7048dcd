"""Example: drive the service layer without Flask.

Controllers are a thin layer; the use cases live in the services, so a
script can preview a payroll period directly.
"""

import importlib
import sys

from config import get_settings_module

from src.qr_attendance.qr_attendance.container import build_container
from src.qr_attendance.qr_attendance.core.enums import Role
from src.qr_attendance.qr_attendance.employees.model import Identity
from src.qr_attendance.qr_attendance.payroll.model import PayrollPeriod


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    period = PayrollPeriod.parse(sys.argv[1] if len(sys.argv) > 1 else "2026-01")
    admin = Identity(employee_id=1, role=Role.ADMIN)
    for record in container.payroll_service.generate(admin, period):
        print(record.to_dict())


if __name__ == "__main__":
    main()
