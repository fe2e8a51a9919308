"""Turn plan rows and usage counters into persisted invoices."""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from digital_archive.models.company import Client, Company
from digital_archive.models.invoice import Invoice, InvoiceItem
from digital_archive.models.plan import ClientPlan, Plan
from digital_archive.services.invoice_service import (
    InvoiceTotals,
    LineItem,
    PlanPricing,
    PricingTier,
    UsageSnapshot,
    compute_custom_invoice_total,
    compute_monthly_breakdown,
    ensure_editable,
    line_amount,
)
from digital_archive.utils.money import from_cents, to_cents

logger = logging.getLogger(__name__)

PAYMENT_TERM_DAYS = 30


def current_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")


def pricing_from_plan(plan: Plan | ClientPlan) -> PlanPricing:
    return PlanPricing(
        monthly_bill=from_cents(plan.monthly_bill_cents) if plan.monthly_bill_cents is not None else None,
        price_description=plan.price_description,
        upload=PricingTier(price=from_cents(plan.upload_price_cents), unit_count=plan.upload_unit_count),
        download=PricingTier(price=from_cents(plan.download_price_cents), unit_count=plan.download_unit_count),
        share=PricingTier(price=from_cents(plan.share_price_cents), unit_count=plan.share_unit_count),
    )


def usage_of(subscriber: Company | Client) -> UsageSnapshot:
    return UsageSnapshot(
        uploads=subscriber.documents_uploaded,
        downloads=subscriber.documents_downloaded,
        shares=subscriber.documents_shared,
    )


def _usage_lines(invoice: Invoice) -> list[LineItem]:
    if invoice.invoice_type != "monthly":
        return []
    charges = [
        ("Monthly subscription", invoice.monthly_cents),
        ("Document uploads", invoice.upload_amount_cents),
        ("Document downloads", invoice.download_amount_cents),
        ("Document shares", invoice.share_amount_cents),
    ]
    return [LineItem(description=d, quantity=Decimal(1), rate=from_cents(c)) for d, c in charges]


def _custom_lines(invoice: Invoice) -> list[LineItem]:
    return [
        LineItem(description=item.description, quantity=Decimal(item.quantity), rate=from_cents(item.rate_cents))
        for item in invoice.items
    ]


def invoice_lines(invoice: Invoice) -> list[LineItem]:
    """Usage charges followed by the custom items."""
    return _usage_lines(invoice) + _custom_lines(invoice)


def invoice_totals(invoice: Invoice) -> InvoiceTotals:
    """All invoice lines together, with the invoice's discount and tax."""
    return compute_custom_invoice_total(
        invoice_lines(invoice),
        Decimal(invoice.discount_percent),
        Decimal(invoice.tax_percent),
    )


def _store_totals(invoice: Invoice):
    totals = invoice_totals(invoice)
    invoice.subtotal_cents = to_cents(totals.subtotal)
    invoice.total_cents = to_cents(totals.total)


def invoice_status(invoice: Invoice) -> str:
    if invoice.invoice_submitted_admin:
        return "verified"
    if invoice.invoice_submitted:
        return "submitted"
    return "pending"


def build_monthly_invoice(subscriber: Company | Client, plan: Plan | ClientPlan, month: str) -> Invoice:
    """Bill a subscriber's usage since its last invoice and reset the period counters."""
    usage = usage_of(subscriber)
    charge = compute_monthly_breakdown(pricing_from_plan(plan), usage)
    now = datetime.now(timezone.utc)
    is_client = isinstance(subscriber, Client)

    invoice = Invoice(
        id=str(uuid.uuid4()),
        company_id=subscriber.company_id if is_client else subscriber.id,
        client_id=subscriber.id if is_client else None,
        is_client=is_client,
        invoice_type="monthly",
        invoice_month=month,
        documents_uploaded=usage.uploads,
        documents_downloaded=usage.downloads,
        documents_shared=usage.shares,
        monthly_cents=to_cents(charge.base),
        upload_amount_cents=to_cents(charge.upload),
        download_amount_cents=to_cents(charge.download),
        share_amount_cents=to_cents(charge.share),
        discount_percent="0",
        tax_percent="0",
        due_date=(now + timedelta(days=PAYMENT_TERM_DAYS)).strftime("%Y-%m-%d"),
        invoice_submitted=False,
        invoice_submitted_admin=False,
        created_at=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    _store_totals(invoice)

    subscriber.documents_uploaded = 0
    subscriber.documents_downloaded = 0
    subscriber.documents_shared = 0
    logger.info("Generated %s invoice %s for %s: %s", month, invoice.id, subscriber.id, charge.total)
    return invoice


def build_custom_invoice(company_id: str, client_id: str | None, month: str,
                         due_date: str | None, notes: str | None) -> Invoice:
    now = datetime.now(timezone.utc)
    return Invoice(
        id=str(uuid.uuid4()),
        company_id=company_id,
        client_id=client_id,
        is_client=client_id is not None,
        invoice_type="custom",
        invoice_month=month,
        discount_percent="0",
        tax_percent="0",
        notes=notes,
        due_date=due_date or (now + timedelta(days=PAYMENT_TERM_DAYS)).strftime("%Y-%m-%d"),
        invoice_submitted=False,
        invoice_submitted_admin=False,
        created_at=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
    )


def set_items(invoice: Invoice, items: list[LineItem], discount_percent: Decimal, tax_percent: Decimal):
    """Replace the custom line items of an invoice and recompute its totals."""
    ensure_editable(invoice)
    # Validates every line and both percentages before anything is mutated.
    compute_custom_invoice_total(items, discount_percent, tax_percent)

    invoice.items.clear()
    for position, item in enumerate(items):
        invoice.items.append(InvoiceItem(
            id=str(uuid.uuid4()),
            position=position,
            description=item.description,
            quantity=str(item.quantity),
            rate_cents=to_cents(item.rate),
            amount_cents=to_cents(line_amount(item)),
        ))
    invoice.discount_percent = str(discount_percent)
    invoice.tax_percent = str(tax_percent)
    _store_totals(invoice)
