from digital_archive.models.plan import Plan, ClientPlan
from digital_archive.models.company import Company, Client
from digital_archive.models.user import User
from digital_archive.models.tag import DocumentTag
from digital_archive.models.document import Document, DocumentComment, DocumentHistory, DocumentShare
from digital_archive.models.dispute import Dispute
from digital_archive.models.invoice import Invoice, InvoiceItem

__all__ = [
    "Plan", "ClientPlan", "Company", "Client", "User", "DocumentTag",
    "Document", "DocumentComment", "DocumentHistory", "DocumentShare", "Dispute", "Invoice", "InvoiceItem",
]
