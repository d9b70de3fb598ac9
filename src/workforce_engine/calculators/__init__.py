"""Salary calculation."""

from workforce_engine.calculators.salary_calculator import SalaryCalculator, SalaryComponents

__all__ = [
    "SalaryCalculator",
    "SalaryComponents",
]
