"""QR attendance & payroll package.

This package is organized by feature modules (policy, checkin, deductions,
payroll, employees) with a thin Flask controller layer and service/repository
layers underneath.
"""
