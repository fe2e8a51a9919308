from decimal import Decimal

from pydantic import BaseModel


class StatsResponse(BaseModel):
    total_invoice_amount: Decimal
    total_documents_uploaded: int
    total_documents_published: int
    documents_by_status: dict[str, int]
    open_disputes: int


class ProgressReportResponse(BaseModel):
    range_type: str
    start_date: str
    end_date: str
    documents_by_status: dict[str, int]
    documents_per_day: dict[str, int]
