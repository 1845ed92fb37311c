import uuid
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _now() -> datetime:
    return datetime.now(UTC)


class PgVectorModels:
    """ORM classes for one embedding dimension.

    ``source.url`` is unique; a source owns its chunks and deleting it
    cascades to them.
    """

    def __init__(self, base: type[DeclarativeBase], source: type[Any], chunk: type[Any]) -> None:
        self.base = base
        self.source = source
        self.chunk = chunk


@lru_cache(maxsize=None)
def build_models(dimensions: int, table_prefix: str = "") -> PgVectorModels:
    class Base(DeclarativeBase):
        pass

    class SourceRecord(Base):
        __tablename__ = f"{table_prefix}websites"

        id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
        url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
        title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
        description: Mapped[str] = mapped_column(Text, nullable=False, default="")
        crawled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
        updated_at: Mapped[datetime] = mapped_column(
            DateTime(timezone=True), default=_now, onupdate=_now
        )

    class ChunkRecord(Base):
        __tablename__ = f"{table_prefix}content_chunks"

        id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
        source_id: Mapped[uuid.UUID] = mapped_column(
            ForeignKey(f"{table_prefix}websites.id", ondelete="CASCADE"), nullable=False
        )
        chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
        content: Mapped[str] = mapped_column(Text, nullable=False)
        metadata_: Mapped[dict[str, Any]] = mapped_column(
            "metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
        )
        embedding: Mapped[list[float]] = mapped_column(Vector(dimensions), nullable=False)
        created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

        __table_args__ = (
            Index(f"ix_{table_prefix}content_chunks_source", "source_id", "chunk_index", unique=True),
            Index(
                f"ix_{table_prefix}content_chunks_embedding",
                "embedding",
                postgresql_using="hnsw",
                postgresql_with={"m": 16, "ef_construction": 64},
                postgresql_ops={"embedding": "vector_cosine_ops"},
            ),
        )

    return PgVectorModels(base=Base, source=SourceRecord, chunk=ChunkRecord)
