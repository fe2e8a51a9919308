from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Text, primary_key=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Text, ForeignKey("clients.id", ondelete="CASCADE"))
    is_client = Column(Boolean, nullable=False, default=False)
    invoice_type = Column(Text, nullable=False, default="monthly")
    invoice_month = Column(Text, nullable=False)
    documents_uploaded = Column(Integer, nullable=False, default=0)
    documents_downloaded = Column(Integer, nullable=False, default=0)
    documents_shared = Column(Integer, nullable=False, default=0)
    monthly_cents = Column(Integer, nullable=False, default=0)
    upload_amount_cents = Column(Integer, nullable=False, default=0)
    download_amount_cents = Column(Integer, nullable=False, default=0)
    share_amount_cents = Column(Integer, nullable=False, default=0)
    discount_percent = Column(Text, nullable=False, default="0")
    tax_percent = Column(Text, nullable=False, default="0")
    subtotal_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)
    notes = Column(Text)
    due_date = Column(Text)
    invoice_submitted = Column(Boolean, nullable=False, default=False)
    invoice_submitted_admin = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(Text)
    verified_at = Column(Text)
    created_at = Column(Text, nullable=False)

    company = relationship("Company")
    client = relationship("Client")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Text, primary_key=True)
    invoice_id = Column(Text, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=False)
    quantity = Column(Text, nullable=False)
    rate_cents = Column(Integer, nullable=False)
    amount_cents = Column(Integer, nullable=False)

    invoice = relationship("Invoice", back_populates="items")
