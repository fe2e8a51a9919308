"""
Invoice arithmetic.

Monthly charges come from a plan's base fee plus three usage tiers, each
priced per block of ``unit_count`` units. Custom invoices are free-form line
items with an optional discount and tax. All arithmetic is Decimal; reported
amounts are rounded to cents half-up.
"""
import re
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

from digital_archive.utils.money import quantize

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_PRICE_RE = re.compile(r"\d+(?:[.,]\d+)?")


class InvoiceValidationError(ValueError):
    pass


class InvoiceLockedError(ValueError):
    pass


class PricingTier(BaseModel):
    price: Decimal = ZERO
    unit_count: int = 0


class PlanPricing(BaseModel):
    monthly_bill: Decimal | None = None
    price_description: str | None = None
    upload: PricingTier = PricingTier()
    download: PricingTier = PricingTier()
    share: PricingTier = PricingTier()


class UsageSnapshot(BaseModel):
    uploads: int = 0
    downloads: int = 0
    shares: int = 0


class MonthlyCharge(BaseModel):
    base: Decimal
    upload: Decimal
    download: Decimal
    share: Decimal
    total: Decimal


class LineItem(BaseModel):
    description: str = ""
    quantity: Decimal
    rate: Decimal


class InvoiceTotals(BaseModel):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def parse_price_description(text: str | None) -> Decimal:
    """First number in a free-text price, e.g. "$49.99 / month" -> 49.99."""
    if not text:
        return ZERO
    match = _PRICE_RE.search(text)
    if not match:
        return ZERO
    try:
        return Decimal(match.group(0).replace(",", "."))
    except InvalidOperation:
        return ZERO


def base_fee(plan: PlanPricing) -> Decimal:
    if plan.monthly_bill is not None:
        return plan.monthly_bill
    return parse_price_description(plan.price_description)


def tier_charge(units: int, tier: PricingTier) -> Decimal:
    """ceil(units / unit_count) * price; an unpriced tier (unit_count 0) charges nothing."""
    if units < 0:
        raise InvoiceValidationError(f"Usage cannot be negative (got {units})")
    if tier.price < 0 or tier.unit_count < 0:
        raise InvoiceValidationError("Tier price and unit count cannot be negative")
    if tier.unit_count == 0:
        return ZERO
    blocks = -(-units // tier.unit_count)
    return tier.price * blocks


def validate_tier(name: str, tier: PricingTier):
    """A priced tier needs a positive unit count."""
    if tier.price < 0 or tier.unit_count < 0:
        raise InvoiceValidationError(f"{name} tier price and unit count cannot be negative")
    if tier.price > 0 and tier.unit_count == 0:
        raise InvoiceValidationError(f"{name} tier has a price but no unit count")


def compute_monthly_breakdown(plan: PlanPricing, usage: UsageSnapshot) -> MonthlyCharge:
    base = base_fee(plan)
    if base < 0:
        raise InvoiceValidationError("Monthly bill cannot be negative")
    upload = tier_charge(usage.uploads, plan.upload)
    download = tier_charge(usage.downloads, plan.download)
    share = tier_charge(usage.shares, plan.share)
    return MonthlyCharge(
        base=quantize(base),
        upload=quantize(upload),
        download=quantize(download),
        share=quantize(share),
        total=quantize(base + upload + download + share),
    )


def compute_monthly_charge(plan: PlanPricing, usage: UsageSnapshot) -> Decimal:
    return compute_monthly_breakdown(plan, usage).total


def _percent(value: Decimal | int | str | None, name: str) -> Decimal:
    pct = Decimal(str(value)) if value is not None else ZERO
    if pct < 0:
        raise InvoiceValidationError(f"{name} cannot be negative")
    return pct


def _line_product(item: LineItem) -> Decimal:
    if item.quantity < 0 or item.rate < 0:
        raise InvoiceValidationError(f"Line item '{item.description}' has a negative quantity or rate")
    return item.quantity * item.rate


def line_amount(item: LineItem) -> Decimal:
    """A line's amount rounded for display; totals sum the unrounded products."""
    return quantize(_line_product(item))


def compute_custom_invoice_total(
    items: Iterable[Any],
    discount_percent: Decimal | int | str | None = 0,
    tax_percent: Decimal | int | str | None = 0,
) -> InvoiceTotals:
    discount_pct = _percent(discount_percent, "Discount percent")
    tax_pct = _percent(tax_percent, "Tax percent")
    if discount_pct > HUNDRED:
        raise InvoiceValidationError("Discount percent cannot exceed 100")

    subtotal = ZERO
    for raw in items:
        item = raw if isinstance(raw, LineItem) else LineItem.model_validate(raw)
        subtotal += _line_product(item)

    subtotal = quantize(subtotal)
    discount = quantize(subtotal * discount_pct / HUNDRED)
    taxed_base = subtotal - discount
    tax = quantize(taxed_base * tax_pct / HUNDRED)
    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=quantize(taxed_base + tax),
    )


def ensure_editable(invoice: Any):
    """Admin-verified invoices are immutable."""
    if getattr(invoice, "invoice_submitted_admin", False):
        raise InvoiceLockedError("Invoice has been verified and can no longer be changed")
