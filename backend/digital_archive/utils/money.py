from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def quantize(amount: Decimal) -> Decimal:
    """Round to whole cents, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal | int | str | None) -> int:
    if amount is None:
        return 0
    return int(quantize(Decimal(str(amount))) * 100)


def from_cents(cents: int | None) -> Decimal:
    if cents is None:
        return Decimal("0.00")
    return quantize(Decimal(cents) / 100)
