"""Earned line builder with idempotent hashing."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from attendance_payroll.calculators.types import EarnedLine, LineType, SalaryComponent


class LineItemBuilder:
    """Builds earned lines with deterministic hashing for idempotency.

    Sign conventions:
    - Lines keep the sign of their structure amount; deductions are stored
      positive and subtracted when net pay is assembled.

    Rounding:
    - Whole currency units, half-up, applied to each line individually
    - Totals are sums of already-rounded lines and are never re-rounded
    """

    OUTPUT_PRECISION = Decimal("1")

    @staticmethod
    def round_amount(amount: Decimal) -> Decimal:
        """Round amount to whole currency units (half-up)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_hash(canonical: Any) -> str:
        """Compute deterministic hash of a canonical JSON-serializable value.

        Identical inputs always produce identical hashes.
        """
        json_str = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()

    @staticmethod
    def create_earned_line(
        line_type: LineType, component: SalaryComponent, factor: Decimal
    ) -> EarnedLine:
        """Prorate one structure component, rounded at line level."""
        amount = component.amount
        return EarnedLine(
            line_type=line_type,
            name=component.name,
            amount=amount,
            earned=LineItemBuilder.round_amount(amount * factor),
        )

    @staticmethod
    def sum_earned(lines: Iterable[EarnedLine]) -> Decimal:
        """Sum earned amounts. No extra rounding on the aggregate."""
        total = Decimal("0")
        for line in lines:
            total += line.earned
        return total

    @staticmethod
    def find_component(lines: Iterable[EarnedLine], *keywords: str) -> Decimal:
        """Earned amount of the first line whose name contains any keyword.

        Matching is case-insensitive; returns 0 when nothing matches.
        """
        lowered = [k.lower() for k in keywords]
        for line in lines:
            name = line.name.lower()
            if any(k in name for k in lowered):
                return line.earned
        return Decimal("0")

