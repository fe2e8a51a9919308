from sqlalchemy import Boolean, Column, ForeignKey, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    resolve = Column(Boolean, nullable=False, default=False)
    created_by_user_id = Column(Text)
    created_by_name = Column(Text, nullable=False)
    resolved_by_name = Column(Text)
    resolved_at = Column(Text)
    created_at = Column(Text, nullable=False)

    document = relationship("Document", back_populates="disputes")
