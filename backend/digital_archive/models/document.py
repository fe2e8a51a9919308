from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from digital_archive.database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(Text, primary_key=True)
    company_id = Column(Text, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Text, ForeignKey("clients.id", ondelete="SET NULL"))
    tag_id = Column(Text, ForeignKey("document_tags.id", ondelete="SET NULL"))
    tag_name = Column(Text)
    title = Column(Text, nullable=False)
    original_filename = Column(Text, nullable=False)
    stored_path = Column(Text, nullable=False, unique=True)
    file_hash = Column(Text, nullable=False)
    file_size_bytes = Column(Integer, nullable=False)
    mime_type = Column(Text)
    properties = Column(JSON, nullable=False, default=list)
    added_by_user_id = Column(Text)
    added_by_role = Column(Text)
    passed_to = Column(Text)
    indexer_passed_id = Column(Text)
    qa_passed_id = Column(Text)
    # Cache of the derived progress; rewritten on every pipeline change.
    progress_number = Column(Integer, nullable=False, default=1)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    history = relationship(
        "DocumentHistory",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentHistory.created_at",
    )
    comments = relationship(
        "DocumentComment",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentComment.created_at",
    )
    shares = relationship("DocumentShare", back_populates="document", cascade="all, delete-orphan")
    disputes = relationship("Dispute", back_populates="document", cascade="all, delete-orphan")


class DocumentHistory(Base):
    __tablename__ = "document_history"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_name = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    details = Column(Text)
    created_at = Column(Text, nullable=False)

    document = relationship("Document", back_populates="history")


class DocumentComment(Base):
    __tablename__ = "document_comments"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Text)
    user_name = Column(Text, nullable=False)
    user_role = Column(Text, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)

    document = relationship("Document", back_populates="comments")


class DocumentShare(Base):
    __tablename__ = "document_shares"

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    password_hash = Column(Text, nullable=False)
    created_by_user_id = Column(Text)
    created_at = Column(Text, nullable=False)

    document = relationship("Document", back_populates="shares")
