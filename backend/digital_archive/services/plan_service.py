from digital_archive.models.plan import ClientPlan, Plan
from digital_archive.services.billing_service import pricing_from_plan
from digital_archive.services.invoice_service import validate_tier
from digital_archive.utils.money import from_cents, to_cents

# API field -> cents column
MONEY_FIELDS = {
    "monthly_bill": "monthly_bill_cents",
    "upload_price": "upload_price_cents",
    "download_price": "download_price_cents",
    "share_price": "share_price_cents",
}


def apply_plan_fields(plan: Plan | ClientPlan, values: dict):
    """Copy API values onto a plan row, converting money to cents."""
    for field, value in values.items():
        column = MONEY_FIELDS.get(field)
        if column is None:
            setattr(plan, field, value)
        elif field == "monthly_bill" and value is None:
            plan.monthly_bill_cents = None
        else:
            setattr(plan, column, to_cents(value))


def validate_plan_pricing(plan: Plan | ClientPlan):
    pricing = pricing_from_plan(plan)
    validate_tier("upload", pricing.upload)
    validate_tier("download", pricing.download)
    validate_tier("share", pricing.share)


def plan_values(plan: Plan | ClientPlan, fields) -> dict:
    """Response values for ``fields``, converting cents columns back to Decimal."""
    values = {}
    for field in fields:
        column = MONEY_FIELDS.get(field)
        if column is None:
            values[field] = getattr(plan, field)
        elif field == "monthly_bill":
            cents = plan.monthly_bill_cents
            values[field] = from_cents(cents) if cents is not None else None
        else:
            values[field] = from_cents(getattr(plan, column))
    return values
