from decimal import Decimal

from pydantic import BaseModel, Field


class InvoiceItemIn(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., ge=0)
    rate: Decimal = Field(..., ge=0)


class InvoiceItemResponse(BaseModel):
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal


class InvoiceItemsUpdate(BaseModel):
    items: list[InvoiceItemIn]
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    tax_percent: Decimal = Field(Decimal("0"), ge=0)


class CustomInvoiceCreate(InvoiceItemsUpdate):
    company_id: str | None = None
    client_id: str | None = None
    invoice_month: str | None = Field(None, pattern=r"^\d{4}-\d{2}$")
    due_date: str | None = None
    notes: str | None = None


class InvoiceResponse(BaseModel):
    id: str
    company_id: str
    company_name: str | None = None
    client_id: str | None
    client_name: str | None = None
    is_client: bool
    invoice_type: str
    invoice_month: str
    documents_uploaded: int
    documents_downloaded: int
    documents_shared: int
    monthly: Decimal
    upload_amount: Decimal
    download_amount: Decimal
    share_amount: Decimal
    items: list[InvoiceItemResponse]
    subtotal: Decimal
    discount_percent: Decimal
    discount: Decimal
    tax_percent: Decimal
    tax: Decimal
    total: Decimal
    notes: str | None
    due_date: str | None
    invoice_submitted: bool
    invoice_submitted_admin: bool
    status: str
    submitted_at: str | None
    verified_at: str | None
    created_at: str


class GenerateInvoicesResponse(BaseModel):
    invoice_month: str
    generated: list[InvoiceResponse]
    skipped: int
