from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    phone = Column(Text)
    role = Column(Text, nullable=False)
    password_hash = Column(Text, nullable=False)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"))
    client_id = Column(Text, ForeignKey("clients.id", ondelete="CASCADE"))
    status = Column(Text, nullable=False, default="active")
    allow_to_publish = Column(Boolean, nullable=False, default=False)
    create_dispute = Column(Boolean, nullable=False, default=False)
    documents_reviewed = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    company = relationship("Company", back_populates="users", foreign_keys=[company_id])
    client = relationship("Client")
