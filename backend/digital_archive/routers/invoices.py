import logging
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, enforce, get_current_user, require_roles
from digital_archive.models.company import Client, Company
from digital_archive.models.invoice import Invoice
from digital_archive.models.user import User
from digital_archive.schemas.invoice import (
    CustomInvoiceCreate,
    GenerateInvoicesResponse,
    InvoiceItemResponse,
    InvoiceItemsUpdate,
    InvoiceResponse,
)
from digital_archive.services import billing_service
from digital_archive.services.export_service import export_invoices_csv
from digital_archive.services.invoice_service import InvoiceLockedError, InvoiceValidationError, LineItem, line_amount
from digital_archive.services.pdf_service import generate_invoice_pdf
from digital_archive.services.permission_service import Action
from digital_archive.utils.money import from_cents

logger = logging.getLogger(__name__)

MONTH_PATTERN = r"^\d{4}-\d{2}$"

admin_only = require_roles("admin")
owner_only = require_roles("owner")

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _invoice_to_response(inv: Invoice) -> InvoiceResponse:
    totals = billing_service.invoice_totals(inv)
    return InvoiceResponse(
        id=inv.id,
        company_id=inv.company_id,
        company_name=inv.company.name if inv.company else None,
        client_id=inv.client_id,
        client_name=inv.client.name if inv.client else None,
        is_client=inv.is_client,
        invoice_type=inv.invoice_type,
        invoice_month=inv.invoice_month,
        documents_uploaded=inv.documents_uploaded,
        documents_downloaded=inv.documents_downloaded,
        documents_shared=inv.documents_shared,
        monthly=from_cents(inv.monthly_cents),
        upload_amount=from_cents(inv.upload_amount_cents),
        download_amount=from_cents(inv.download_amount_cents),
        share_amount=from_cents(inv.share_amount_cents),
        items=[
            InvoiceItemResponse(
                description=item.description,
                quantity=Decimal(item.quantity),
                rate=from_cents(item.rate_cents),
                amount=from_cents(item.amount_cents),
            )
            for item in inv.items
        ],
        subtotal=totals.subtotal,
        discount_percent=Decimal(inv.discount_percent),
        discount=totals.discount,
        tax_percent=Decimal(inv.tax_percent),
        tax=totals.tax,
        total=totals.total,
        notes=inv.notes,
        due_date=inv.due_date,
        invoice_submitted=inv.invoice_submitted,
        invoice_submitted_admin=inv.invoice_submitted_admin,
        status=billing_service.invoice_status(inv),
        submitted_at=inv.submitted_at,
        verified_at=inv.verified_at,
        created_at=inv.created_at,
    )


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _already_billed(db: Session, company_id: str, client_id: str | None, month: str) -> bool:
    return db.query(Invoice).filter(
        Invoice.company_id == company_id,
        Invoice.client_id == client_id if client_id else Invoice.client_id.is_(None),
        Invoice.invoice_type == "monthly",
        Invoice.invoice_month == month,
    ).first() is not None


def _generate(subscribers: list[Company | Client], month: str, db: Session) -> GenerateInvoicesResponse:
    generated = []
    skipped = 0
    for subscriber in subscribers:
        is_client = isinstance(subscriber, Client)
        company_id = subscriber.company_id if is_client else subscriber.id
        client_id = subscriber.id if is_client else None
        if subscriber.status != "active" or subscriber.plan is None or _already_billed(db, company_id, client_id, month):
            skipped += 1
            continue
        invoice = billing_service.build_monthly_invoice(subscriber, subscriber.plan, month)
        db.add(invoice)
        generated.append(invoice)
    db.commit()
    for invoice in generated:
        db.refresh(invoice)
    return GenerateInvoicesResponse(
        invoice_month=month,
        generated=[_invoice_to_response(i) for i in generated],
        skipped=skipped,
    )


def _set_items(inv: Invoice, req: InvoiceItemsUpdate):
    items = [LineItem(description=i.description, quantity=i.quantity, rate=i.rate) for i in req.items]
    try:
        billing_service.set_items(inv, items, req.discount_percent, req.tax_percent)
    except InvoiceLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvoiceValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _submit(inv: Invoice, user: User, db: Session) -> InvoiceResponse:
    enforce(Action.SUBMIT_INVOICE, user, invoice=inv)
    inv.invoice_submitted = True
    inv.submitted_at = _now()
    db.commit()
    db.refresh(inv)
    logger.info("Invoice %s submitted by %s", inv.id, user.id)
    return _invoice_to_response(inv)


def _verify(inv: Invoice, user: User, db: Session) -> InvoiceResponse:
    enforce(Action.VERIFY_INVOICE, user, invoice=inv)
    inv.invoice_submitted_admin = True
    inv.verified_at = _now()
    db.commit()
    db.refresh(inv)
    logger.info("Invoice %s verified by %s", inv.id, user.id)
    return _invoice_to_response(inv)


def _pdf_response(inv: Invoice) -> Response:
    totals = billing_service.invoice_totals(inv)
    billed_to = inv.client.name if inv.client else (inv.company.name if inv.company else inv.company_id)
    issued_by = inv.company.name if inv.is_client and inv.company else "Digital Archive"
    pdf = generate_invoice_pdf(
        invoice_id=inv.id,
        billed_to=billed_to,
        issued_by=issued_by,
        invoice_month=inv.invoice_month,
        created_at=inv.created_at,
        due_date=inv.due_date,
        lines=[
            (line.description, line.quantity, line.rate, line_amount(line))
            for line in billing_service.invoice_lines(inv)
        ],
        subtotal=totals.subtotal,
        discount_percent=Decimal(inv.discount_percent),
        discount=totals.discount,
        tax_percent=Decimal(inv.tax_percent),
        tax=totals.tax,
        total=totals.total,
        status=billing_service.invoice_status(inv),
        notes=inv.notes,
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="invoice_{inv.invoice_month}_{inv.id[:8]}.pdf"'},
    )


def _csv_response(invoices: list[Invoice], filename: str) -> Response:
    return Response(
        content=export_invoices_csv(invoices),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Company invoices: billed by the platform admin, paid by the company owner.

def _company_invoices(user: User, db: Session):
    query = db.query(Invoice).filter(Invoice.is_client.is_(False))
    if user.role == "admin":
        return query
    if user.role == "owner":
        return query.filter(Invoice.company_id == company_scope(user))
    raise HTTPException(status_code=403, detail=f"The {user.role} role cannot view company invoices")


def _get_company_invoice(invoice_id: str, user: User, db: Session) -> Invoice:
    inv = _company_invoices(user, db).filter(Invoice.id == invoice_id).first()
    if not inv:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return inv


@router.post("/generate", response_model=GenerateInvoicesResponse)
async def generate_invoices(
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    user: User = Depends(admin_only),
    db: Session = Depends(get_db),
):
    """Bill every active company for its usage since the last invoice."""
    companies = db.query(Company).order_by(Company.name).all()
    return _generate(companies, month or billing_service.current_month(), db)


@router.post("/custom", response_model=InvoiceResponse, status_code=201)
async def create_custom_invoice(req: CustomInvoiceCreate, user: User = Depends(admin_only),
                                db: Session = Depends(get_db)):
    if not req.company_id:
        raise HTTPException(status_code=400, detail="company_id is required")
    if not db.query(Company).filter(Company.id == req.company_id).first():
        raise HTTPException(status_code=404, detail="Company not found")

    inv = billing_service.build_custom_invoice(
        req.company_id, None, req.invoice_month or billing_service.current_month(), req.due_date, req.notes,
    )
    _set_items(inv, req)
    db.add(inv)
    db.commit()
    db.refresh(inv)
    return _invoice_to_response(inv)


@router.get("/export/csv")
async def export_company_invoices(user: User = Depends(admin_only), db: Session = Depends(get_db)):
    invoices = _company_invoices(user, db).order_by(Invoice.created_at.desc()).all()
    return _csv_response(invoices, "invoices_export.csv")


@router.get("", response_model=list[InvoiceResponse])
async def list_invoices(
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    company_id: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _company_invoices(user, db)
    if month:
        query = query.filter(Invoice.invoice_month == month)
    if company_id:
        query = query.filter(Invoice.company_id == company_id)
    return [_invoice_to_response(i) for i in query.order_by(Invoice.created_at.desc()).all()]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _invoice_to_response(_get_company_invoice(invoice_id, user, db))


@router.put("/{invoice_id}/items", response_model=InvoiceResponse)
async def update_invoice_items(invoice_id: str, req: InvoiceItemsUpdate, user: User = Depends(admin_only),
                               db: Session = Depends(get_db)):
    inv = _get_company_invoice(invoice_id, user, db)
    _set_items(inv, req)
    db.commit()
    db.refresh(inv)
    return _invoice_to_response(inv)


@router.put("/{invoice_id}/submit", response_model=InvoiceResponse)
async def submit_invoice(invoice_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _submit(_get_company_invoice(invoice_id, user, db), user, db)


@router.put("/{invoice_id}/verify", response_model=InvoiceResponse)
async def verify_invoice(invoice_id: str, user: User = Depends(admin_only), db: Session = Depends(get_db)):
    return _verify(_get_company_invoice(invoice_id, user, db), user, db)


@router.get("/{invoice_id}/pdf")
async def invoice_pdf(invoice_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _pdf_response(_get_company_invoice(invoice_id, user, db))


# Client invoices: billed by a company owner to their own clients.
client_invoices_router = APIRouter(prefix="/client-invoices", tags=["invoices"])


def _client_invoices(user: User, db: Session):
    query = db.query(Invoice).filter(Invoice.is_client.is_(True))
    if user.role == "owner":
        return query.filter(Invoice.company_id == company_scope(user))
    if user.role == "client":
        return query.filter(Invoice.client_id == user.client_id)
    raise HTTPException(status_code=403, detail=f"The {user.role} role cannot view client invoices")


def _get_client_invoice(invoice_id: str, user: User, db: Session) -> Invoice:
    inv = _client_invoices(user, db).filter(Invoice.id == invoice_id).first()
    if not inv:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return inv


@client_invoices_router.post("/generate", response_model=GenerateInvoicesResponse)
async def generate_client_invoices(
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    user: User = Depends(owner_only),
    db: Session = Depends(get_db),
):
    """Bill every active client of the owner's company."""
    clients = db.query(Client).filter(Client.company_id == company_scope(user)).order_by(Client.name).all()
    return _generate(clients, month or billing_service.current_month(), db)


@client_invoices_router.post("/custom", response_model=InvoiceResponse, status_code=201)
async def create_custom_client_invoice(req: CustomInvoiceCreate, user: User = Depends(owner_only),
                                       db: Session = Depends(get_db)):
    if not req.client_id:
        raise HTTPException(status_code=400, detail="client_id is required")
    company_id = company_scope(user)
    client = db.query(Client).filter(Client.id == req.client_id, Client.company_id == company_id).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")

    inv = billing_service.build_custom_invoice(
        company_id, client.id, req.invoice_month or billing_service.current_month(), req.due_date, req.notes,
    )
    _set_items(inv, req)
    db.add(inv)
    db.commit()
    db.refresh(inv)
    return _invoice_to_response(inv)


@client_invoices_router.get("/export/csv")
async def export_client_invoices(user: User = Depends(owner_only), db: Session = Depends(get_db)):
    invoices = _client_invoices(user, db).order_by(Invoice.created_at.desc()).all()
    return _csv_response(invoices, "client_invoices_export.csv")


@client_invoices_router.get("", response_model=list[InvoiceResponse])
async def list_client_invoices(
    month: str | None = Query(None, pattern=MONTH_PATTERN),
    client_id: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _client_invoices(user, db)
    if month:
        query = query.filter(Invoice.invoice_month == month)
    if client_id:
        query = query.filter(Invoice.client_id == client_id)
    return [_invoice_to_response(i) for i in query.order_by(Invoice.created_at.desc()).all()]


@client_invoices_router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_client_invoice(invoice_id: str, user: User = Depends(get_current_user),
                             db: Session = Depends(get_db)):
    return _invoice_to_response(_get_client_invoice(invoice_id, user, db))


@client_invoices_router.put("/{invoice_id}/items", response_model=InvoiceResponse)
async def update_client_invoice_items(invoice_id: str, req: InvoiceItemsUpdate, user: User = Depends(owner_only),
                                      db: Session = Depends(get_db)):
    inv = _get_client_invoice(invoice_id, user, db)
    _set_items(inv, req)
    db.commit()
    db.refresh(inv)
    return _invoice_to_response(inv)


@client_invoices_router.put("/{invoice_id}/submit", response_model=InvoiceResponse)
async def submit_client_invoice(invoice_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    return _submit(_get_client_invoice(invoice_id, user, db), user, db)


@client_invoices_router.put("/{invoice_id}/verify", response_model=InvoiceResponse)
async def verify_client_invoice(invoice_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    return _verify(_get_client_invoice(invoice_id, user, db), user, db)


@client_invoices_router.get("/{invoice_id}/pdf")
async def client_invoice_pdf(invoice_id: str, user: User = Depends(get_current_user),
                             db: Session = Depends(get_db)):
    return _pdf_response(_get_client_invoice(invoice_id, user, db))
