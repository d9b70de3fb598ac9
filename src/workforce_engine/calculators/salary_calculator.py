"""Monthly salary computation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from workforce_engine.errors import InvalidAmount


@dataclass(frozen=True)
class SalaryComponents:
    """The four inputs of a payroll record plus derived net pay."""

    basic: Decimal
    allowance: Decimal
    deductions: Decimal
    tax: Decimal

    @property
    def net_pay(self) -> Decimal:
        return SalaryCalculator.net_pay(self.basic, self.allowance, self.deductions, self.tax)

    def replace(self, **changes: Decimal | None) -> SalaryComponents:
        """Copy with the non-None changes applied."""
        values = {
            "basic": self.basic,
            "allowance": self.allowance,
            "deductions": self.deductions,
            "tax": self.tax,
        }
        for name, value in changes.items():
            if value is not None:
                values[name] = value
        return SalaryComponents(**values)


class SalaryCalculator:
    """Computes tax and net pay from compensation base values.

    Rules:
    - tax = basic * tax_rate, rounded half-up to a whole currency unit
    - net = basic + allowance - deductions - tax
    - every input must be non-negative
    """

    WHOLE_UNIT = Decimal("1")
    OUTPUT_PRECISION = Decimal("0.01")

    def __init__(self, tax_rate: Decimal):
        if tax_rate < 0 or tax_rate > 1:
            raise ValueError(f"Tax rate must be between 0 and 1, got {tax_rate}")
        self.tax_rate = tax_rate

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        return amount.quantize(SalaryCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    def compute_tax(self, basic: Decimal) -> Decimal:
        taxed = (Decimal(basic) * self.tax_rate).quantize(self.WHOLE_UNIT, rounding=ROUND_HALF_UP)
        return self.round_to_cents(taxed)

    @staticmethod
    def net_pay(basic: Decimal, allowance: Decimal, deductions: Decimal, tax: Decimal) -> Decimal:
        return SalaryCalculator.round_to_cents(basic + allowance - deductions - tax)

    @staticmethod
    def validate(components: SalaryComponents) -> None:
        """Raise InvalidAmount if any component is negative."""
        for name in ("basic", "allowance", "deductions", "tax"):
            value = getattr(components, name)
            if value < 0:
                raise InvalidAmount(f"{name} must be non-negative, got {value}")

    def calculate(
        self,
        basic: Decimal,
        allowance: Decimal,
        deductions: Decimal,
    ) -> SalaryComponents:
        """Build salary components for one pay period."""
        basic = self.round_to_cents(Decimal(basic))
        allowance = self.round_to_cents(Decimal(allowance))
        deductions = self.round_to_cents(Decimal(deductions))
        components = SalaryComponents(
            basic=basic,
            allowance=allowance,
            deductions=deductions,
            tax=self.compute_tax(basic),
        )
        self.validate(components)
        return components
