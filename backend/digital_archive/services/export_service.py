import csv
import io

from digital_archive.models.invoice import Invoice
from digital_archive.services.billing_service import invoice_status, invoice_totals
from digital_archive.utils.money import from_cents

CSV_COLUMNS = [
    "invoice_id", "invoice_month", "invoice_type", "company", "client",
    "documents_uploaded", "documents_downloaded", "documents_shared",
    "monthly", "upload_amount", "download_amount", "share_amount",
    "subtotal", "discount", "tax", "total", "status", "due_date", "created_at",
]


def export_invoices_csv(invoices: list[Invoice]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for inv in invoices:
        totals = invoice_totals(inv)
        writer.writerow([
            inv.id, inv.invoice_month, inv.invoice_type,
            inv.company.name if inv.company else "",
            inv.client.name if inv.client else "",
            inv.documents_uploaded, inv.documents_downloaded, inv.documents_shared,
            from_cents(inv.monthly_cents), from_cents(inv.upload_amount_cents),
            from_cents(inv.download_amount_cents), from_cents(inv.share_amount_cents),
            totals.subtotal, totals.discount, totals.tax, totals.total,
            invoice_status(inv), inv.due_date or "", inv.created_at,
        ])
    return output.getvalue()
