"""Labor cost and rate arithmetic."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from labor_settlement.errors import ValidationError

ZERO = Decimal("0")


class CostCalculator:
    """Pure cost arithmetic on Decimals.

    Internal values are kept at full precision. Rounding to cents happens
    only when presenting amounts, never before storing them.
    """

    OUTPUT_PRECISION = Decimal("0.01")
    # Fractional digits hours columns store.
    HOURS_SCALE = 4

    @staticmethod
    def to_decimal(value: Decimal | int | float | str, field: str = "value") -> Decimal:
        """Coerce a numeric input to Decimal without float artifacts."""
        if isinstance(value, Decimal):
            result = value
        else:
            try:
                result = Decimal(str(value))
            except (InvalidOperation, ValueError) as exc:
                raise ValidationError(f"{field} must be a number, got {value!r}") from exc
        if not result.is_finite():
            raise ValidationError(f"{field} must be a finite number")
        return result

    @staticmethod
    def labor_cost(hours: Decimal, rate: Decimal) -> Decimal:
        """Cost of hours at an hourly rate."""
        return hours * rate

    @staticmethod
    def effective_rate(amount: Decimal, hours: Decimal) -> Decimal:
        """Derive the hourly rate behind a stored amount (0 when hours is 0)."""
        if hours == ZERO:
            return ZERO
        return amount / hours

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places for display."""
        return amount.quantize(CostCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def require_positive_hours(hours: Decimal | int | float | str | None, field: str = "hours") -> Decimal:
        """Validate and coerce an hours value that must be > 0."""
        if hours is None:
            raise ValidationError(f"{field} is required")
        value = CostCalculator.to_decimal(hours, field)
        if value <= ZERO:
            raise ValidationError(f"{field} must be greater than 0, got {value}")
        if -value.normalize().as_tuple().exponent > CostCalculator.HOURS_SCALE:
            raise ValidationError(
                f"{field} allows at most {CostCalculator.HOURS_SCALE} decimal places, got {value}"
            )
        return value
