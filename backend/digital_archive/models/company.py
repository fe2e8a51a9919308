from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=False)
    admin_name = Column(Text)
    plan_id = Column(Text, ForeignKey("plans.id", ondelete="RESTRICT"))
    status = Column(Text, nullable=False, default="pending")
    # Usage since the last generated invoice
    documents_uploaded = Column(Integer, nullable=False, default=0)
    documents_downloaded = Column(Integer, nullable=False, default=0)
    documents_shared = Column(Integer, nullable=False, default=0)
    total_documents_uploaded = Column(Integer, nullable=False, default=0)
    documents_indexed = Column(Integer, nullable=False, default=0)
    documents_qa_passed = Column(Integer, nullable=False, default=0)
    total_documents_published = Column(Integer, nullable=False, default=0)
    storage_assigned = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    plan = relationship("Plan", back_populates="companies")
    clients = relationship("Client", back_populates="company", cascade="all, delete-orphan")
    users = relationship("User", back_populates="company", foreign_keys="User.company_id")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Text, primary_key=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=False)
    plan_id = Column(Text, ForeignKey("client_plans.id", ondelete="RESTRICT"))
    status = Column(Text, nullable=False, default="pending")
    documents_uploaded = Column(Integer, nullable=False, default=0)
    documents_downloaded = Column(Integer, nullable=False, default=0)
    documents_shared = Column(Integer, nullable=False, default=0)
    total_documents_uploaded = Column(Integer, nullable=False, default=0)
    documents_indexed = Column(Integer, nullable=False, default=0)
    documents_qa_passed = Column(Integer, nullable=False, default=0)
    total_documents_published = Column(Integer, nullable=False, default=0)
    storage_assigned = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    company = relationship("Company", back_populates="clients")
    plan = relationship("ClientPlan", back_populates="clients")
