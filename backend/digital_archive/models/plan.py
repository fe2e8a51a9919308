from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text)
    can_share_document = Column(Boolean, nullable=False, default=False)
    can_view_activity_logs = Column(Boolean, nullable=False, default=False)
    can_view_chat = Column(Boolean, nullable=False, default=False)
    can_view_reports = Column(Boolean, nullable=False, default=False)
    allow_multiple_uploads = Column(Boolean, nullable=False, default=False)
    can_add_client = Column(Boolean, nullable=False, default=False)
    number_of_clients = Column(Integer, nullable=False, default=0)
    total_users = Column(Integer, nullable=False, default=0)
    storage_limit_gb = Column(Integer, nullable=False, default=0)
    docs_upload_limit = Column(Integer, nullable=False, default=0)
    monthly_bill_cents = Column(Integer)
    price_description = Column(Text)
    billing_duration = Column(Integer, nullable=False, default=1)
    upload_price_cents = Column(Integer, nullable=False, default=0)
    upload_unit_count = Column(Integer, nullable=False, default=0)
    download_price_cents = Column(Integer, nullable=False, default=0)
    download_unit_count = Column(Integer, nullable=False, default=0)
    share_price_cents = Column(Integer, nullable=False, default=0)
    share_unit_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    companies = relationship("Company", back_populates="plan")


class ClientPlan(Base):
    __tablename__ = "client_plans"

    id = Column(Text, primary_key=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    can_share_document = Column(Boolean, nullable=False, default=False)
    can_view_activity_logs = Column(Boolean, nullable=False, default=False)
    can_view_chat = Column(Boolean, nullable=False, default=False)
    can_view_reports = Column(Boolean, nullable=False, default=False)
    allow_multiple_uploads = Column(Boolean, nullable=False, default=False)
    storage_limit_gb = Column(Integer, nullable=False, default=0)
    docs_upload_limit = Column(Integer, nullable=False, default=0)
    monthly_bill_cents = Column(Integer)
    price_description = Column(Text)
    billing_duration = Column(Integer, nullable=False, default=1)
    upload_price_cents = Column(Integer, nullable=False, default=0)
    upload_unit_count = Column(Integer, nullable=False, default=0)
    download_price_cents = Column(Integer, nullable=False, default=0)
    download_unit_count = Column(Integer, nullable=False, default=0)
    share_price_cents = Column(Integer, nullable=False, default=0)
    share_unit_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    clients = relationship("Client", back_populates="plan")
