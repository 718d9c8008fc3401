# =============================================================================
# Database Models — SQLAlchemy ORM (Solution 2)
# =============================================================================
#
# Schema for the self-hosted pipeline: the FK benefits PDF and its embedded
# chunks. Solution 1 keeps its document in the hosted vector store and has
# no tables here.
#
# ┌──────────────────┐       ┌──────────────────────────────────┐
# │  documents       │       │  chunks                          │
# ├──────────────────┤       ├──────────────────────────────────┤
# │ id (PK)          │──1:N─▶│ id (PK)                          │
# │ filename         │       │ document_id (FK → documents.id)  │
# │ content_hash (U) │       │ content (text)                   │
# │ file_size        │       │ page_number (int)                │
# │ page_count       │       │ chunk_index (int)                │
# │ status           │       │ token_count (int)                │
# │ error_message    │       │ embedding (vector(1536))         │
# │ celery_task_id   │       │ metadata_ (jsonb)                │
# │ created_at       │       │ created_at                       │
# │ updated_at       │       └──────────────────────────────────┘
# └──────────────────┘
#
# content_hash (sha256 of the PDF bytes) lets ingestion skip a document
# that is already stored.
# =============================================================================

import enum
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.config import settings


class Base(DeclarativeBase):
    pass


class DocumentStatus(str, enum.Enum):
    """
    Ingestion pipeline state for a document.

        PENDING → PROCESSING → COMPLETED
                             → FAILED
    """

    PENDING = "pending"          # Uploaded, waiting for a worker
    PROCESSING = "processing"    # Parsing / chunking / embedding
    COMPLETED = "completed"      # All chunks embedded and stored
    FAILED = "failed"            # See error_message


class Document(Base):
    """An ingested PDF. Parent of its chunks."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)

    # sha256 hex digest of the raw PDF bytes
    content_hash: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )

    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus),
        nullable=False,
        default=DocumentStatus.PENDING,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    celery_task_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Deleting a document deletes its chunks
    chunks: Mapped[list["Chunk"]] = relationship(
        "Chunk",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, filename='{self.filename}', status={self.status})>"


class Chunk(Base):
    """
    A chunk of text from a document plus its embedding.

    Queries embed the question and rank chunks by cosine distance to it;
    the top-k become the synthesis context.
    """

    __tablename__ = "chunks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # 1-indexed PDF page, used for "sida N" citations
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    token_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # text-embedding-3-small output, stored as a pgvector `vector(1536)`
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimensions),
        nullable=True,
    )

    # source filename, section heading, element types.
    # `metadata_` because `.metadata` is taken by the declarative base.
    metadata_: Mapped[dict | None] = mapped_column(
        JSONB,
        nullable=True,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    document: Mapped["Document"] = relationship("Document", back_populates="chunks")

    def __repr__(self) -> str:
        return (
            f"<Chunk(id={self.id}, doc_id={self.document_id}, "
            f"index={self.chunk_index}, tokens={self.token_count})>"
        )


# =============================================================================
# Indexes
# =============================================================================

# HNSW index for cosine-distance nearest neighbour search
chunk_embedding_idx = Index(
    "idx_chunk_embedding_hnsw",
    Chunk.embedding,
    postgresql_using="hnsw",
    postgresql_with={"m": 16, "ef_construction": 64},
    postgresql_ops={"embedding": "vector_cosine_ops"},
)

chunk_document_idx = Index(
    "idx_chunk_document_id",
    Chunk.document_id,
)
