"""Workforce event and payroll processing engine."""

__version__ = "0.1.0"
