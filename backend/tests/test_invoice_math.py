from decimal import Decimal
from types import SimpleNamespace

import pytest

from digital_archive.services.invoice_service import (
    InvoiceLockedError,
    InvoiceValidationError,
    LineItem,
    PlanPricing,
    PricingTier,
    UsageSnapshot,
    compute_custom_invoice_total,
    compute_monthly_breakdown,
    compute_monthly_charge,
    ensure_editable,
    parse_price_description,
    tier_charge,
    validate_tier,
)

PLAN = PlanPricing(
    monthly_bill=Decimal("50"),
    upload=PricingTier(price=Decimal("2"), unit_count=10),
    download=PricingTier(price=Decimal("5"), unit_count=1000),
    share=PricingTier(price=Decimal("3"), unit_count=1000),
)


class TestMonthlyCharge:
    def test_usage_blocks_round_up(self):
        charge = compute_monthly_breakdown(PLAN, UsageSnapshot(uploads=25, downloads=2500, shares=500))
        assert charge.upload == Decimal("6.00")
        assert charge.download == Decimal("15.00")
        assert charge.share == Decimal("3.00")
        assert charge.total == Decimal("74.00")

    def test_block_count_exact_for_large_usage(self):
        tier = PricingTier(price=Decimal("1"), unit_count=10 ** 18)
        assert tier_charge(10 ** 18 + 1, tier) == Decimal("2")
        assert tier_charge(10 ** 18, tier) == Decimal("1")

    def test_zero_usage_charges_base_only(self):
        assert compute_monthly_charge(PLAN, UsageSnapshot()) == Decimal("50.00")

    def test_unpriced_tier_charges_nothing(self):
        assert tier_charge(500, PricingTier(price=Decimal("9"), unit_count=0)) == 0

    def test_base_from_price_description(self):
        plan = PlanPricing(price_description="$49.99 / month")
        assert compute_monthly_charge(plan, UsageSnapshot()) == Decimal("49.99")

    def test_no_base_price(self):
        assert compute_monthly_charge(PlanPricing(), UsageSnapshot()) == Decimal("0.00")

    def test_price_description_without_number(self):
        assert parse_price_description("contact sales") == 0

    def test_negative_usage_rejected(self):
        with pytest.raises(InvoiceValidationError):
            compute_monthly_charge(PLAN, UsageSnapshot(uploads=-1))

    def test_priced_tier_needs_units(self):
        with pytest.raises(InvoiceValidationError):
            validate_tier("upload", PricingTier(price=Decimal("1"), unit_count=0))

    def test_idempotent(self):
        usage = UsageSnapshot(uploads=11, downloads=1, shares=1001)
        assert compute_monthly_breakdown(PLAN, usage) == compute_monthly_breakdown(PLAN, usage)


class TestCustomInvoice:
    def test_discount_then_tax(self):
        items = [
            LineItem(description="Scanning", quantity=Decimal(2), rate=Decimal(100)),
            LineItem(description="Setup", quantity=Decimal(1), rate=Decimal(50)),
        ]
        totals = compute_custom_invoice_total(items, 10, 8)
        assert totals.subtotal == Decimal("250.00")
        assert totals.discount == Decimal("25.00")
        assert totals.tax == Decimal("18.00")
        assert totals.total == Decimal("243.00")

    def test_empty_items_are_all_zero(self):
        totals = compute_custom_invoice_total([], 0, 0)
        assert totals.subtotal == totals.discount == totals.tax == totals.total == 0

    def test_accepts_plain_mappings(self):
        totals = compute_custom_invoice_total([{"quantity": "1.5", "rate": "10"}])
        assert totals.total == Decimal("15.00")

    def test_sub_cent_lines_rounded_once(self):
        items = [{"quantity": "0.5", "rate": "0.01"}, {"quantity": "0.5", "rate": "0.01"}]
        totals = compute_custom_invoice_total(items)
        assert totals.subtotal == Decimal("0.01")
        assert totals.total == Decimal("0.01")

    def test_rounds_half_up(self):
        totals = compute_custom_invoice_total([{"quantity": 1, "rate": "0.05"}], tax_percent=50)
        assert totals.tax == Decimal("0.03")

    @pytest.mark.parametrize("items,discount,tax", [
        ([{"quantity": -1, "rate": 1}], 0, 0),
        ([{"quantity": 1, "rate": -1}], 0, 0),
        ([], -5, 0),
        ([], 0, -5),
        ([], 101, 0),
    ])
    def test_invalid_input_rejected(self, items, discount, tax):
        with pytest.raises(InvoiceValidationError):
            compute_custom_invoice_total(items, discount, tax)


class TestLocking:
    def test_verified_invoice_cannot_change(self):
        with pytest.raises(InvoiceLockedError):
            ensure_editable(SimpleNamespace(invoice_submitted_admin=True))

    def test_unverified_invoice_is_editable(self):
        ensure_editable(SimpleNamespace(invoice_submitted_admin=False))
