from sqlalchemy import JSON, Column, ForeignKey, Text
from digital_archive.database import Base


class DocumentTag(Base):
    __tablename__ = "document_tags"

    id = Column(Text, primary_key=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    # Names of the index fields documents with this tag carry
    properties = Column(JSON, nullable=False, default=list)
    created_at = Column(Text, nullable=False)
