from decimal import Decimal

from fpdf import FPDF


def _latin1(text: str) -> str:
    """fpdf built-in fonts are latin-1 only."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


def _money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def generate_invoice_pdf(
    invoice_id: str,
    billed_to: str,
    issued_by: str,
    invoice_month: str,
    created_at: str,
    due_date: str | None,
    lines: list[tuple[str, Decimal, Decimal, Decimal]],
    subtotal: Decimal,
    discount_percent: Decimal,
    discount: Decimal,
    tax_percent: Decimal,
    tax: Decimal,
    total: Decimal,
    status: str,
    notes: str | None = None,
) -> bytes:
    """Render an invoice. ``lines`` holds (description, quantity, rate, amount)."""
    pdf = FPDF()
    pdf.set_margins(20, 20, 20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, _latin1(f"Invoice {invoice_month}"), ln=True)
    pdf.ln(2)

    pdf.set_font("Helvetica", "", 10)
    pdf.set_text_color(80, 80, 80)
    pdf.cell(0, 6, _latin1(f"Invoice no: {invoice_id}"), ln=True)
    pdf.cell(0, 6, _latin1(f"Issued by: {issued_by}"), ln=True)
    pdf.cell(0, 6, _latin1(f"Billed to: {billed_to}"), ln=True)
    pdf.cell(0, 6, _latin1(f"Issued: {created_at}"), ln=True)
    if due_date:
        pdf.cell(0, 6, _latin1(f"Due: {due_date}"), ln=True)
    pdf.cell(0, 6, _latin1(f"Status: {status}"), ln=True)

    pdf.ln(3)
    pdf.set_draw_color(200, 200, 200)
    pdf.line(20, pdf.get_y(), 190, pdf.get_y())
    pdf.ln(4)

    # Line items
    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(90, 7, "Description")
    pdf.cell(25, 7, "Qty", align="R")
    pdf.cell(25, 7, "Rate", align="R")
    pdf.cell(30, 7, "Amount", align="R", ln=True)

    pdf.set_font("Helvetica", "", 10)
    for description, quantity, rate, amount in lines:
        pdf.cell(90, 6, _latin1(description[:60]))
        pdf.cell(25, 6, _latin1(f"{quantity.normalize():f}"), align="R")
        pdf.cell(25, 6, _money(rate), align="R")
        pdf.cell(30, 6, _money(amount), align="R", ln=True)

    pdf.ln(3)
    pdf.line(110, pdf.get_y(), 190, pdf.get_y())
    pdf.ln(2)

    summary = [("Subtotal", subtotal)]
    if discount:
        summary.append((f"Discount ({discount_percent.normalize():f}%)", -discount))
    if tax:
        summary.append((f"Tax ({tax_percent.normalize():f}%)", tax))
    for label, amount in summary:
        pdf.cell(140, 6, _latin1(label), align="R")
        pdf.cell(30, 6, _money(amount), align="R", ln=True)

    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(140, 8, "Total", align="R")
    pdf.cell(30, 8, _money(total), align="R", ln=True)

    if notes:
        pdf.ln(6)
        pdf.set_font("Helvetica", "", 9)
        pdf.set_text_color(80, 80, 80)
        pdf.multi_cell(0, 5, _latin1(notes[:5000]))

    return bytes(pdf.output())
