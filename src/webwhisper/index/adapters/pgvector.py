from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TypeVar

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from webwhisper.errors import IndexUnavailable
from webwhisper.index.adapters.pgvector_models import PgVectorModels, build_models
from webwhisper.index.base import AbstractVectorIndex
from webwhisper.index.metrics import Metric, to_similarity
from webwhisper.index.types import ChunkInput, IndexHealth, RetrievalResult, SearchFilters, Source
from webwhisper.util.db import ensure_engine, ensure_vector_extension, get_session

_logger = structlog.get_logger()

T = TypeVar("T")


class PgVectorIndex(AbstractVectorIndex):
    """PostgreSQL + pgvector: a ``websites`` row per source, ``content_chunks`` per passage.

    Re-ingesting a source replaces its chunks inside one transaction.
    """

    name = "pgvector"

    def __init__(self, database_url: str, dimensions: int, table_prefix: str = "") -> None:
        super().__init__(dimensions)
        self._database_url = database_url
        self._models: PgVectorModels = build_models(dimensions, table_prefix)

    def initialize(self) -> None:
        with self._translate_errors():
            engine = ensure_engine(self._database_url)
            ensure_vector_extension()
            self._models.base.metadata.create_all(engine)
        _logger.info("pgvector_index_initialized", dimensions=self.dimensions)

    def _replace_source(
        self,
        source_url: str,
        title: str,
        description: str,
        chunks: Sequence[ChunkInput],
    ) -> int:
        if not chunks:
            # A source without chunks is not kept.
            self._delete(source_url)
            return 0

        source_model = self._models.source
        chunk_model = self._models.chunk

        def _write(session: Session) -> int:
            with session.begin():
                source = session.execute(
                    select(source_model).where(source_model.url == source_url)
                ).scalar_one_or_none()
                if source is None:
                    source = source_model(url=source_url, title=title, description=description)
                    session.add(source)
                    session.flush()
                else:
                    source.title = title
                    source.description = description
                    source.updated_at = datetime.now(UTC)
                    session.execute(delete(chunk_model).where(chunk_model.source_id == source.id))

                session.add_all(
                    chunk_model(
                        source_id=source.id,
                        chunk_index=i,
                        content=chunk.content,
                        metadata_=dict(chunk.metadata),
                        embedding=list(chunk.embedding),
                    )
                    for i, chunk in enumerate(chunks)
                )
            return len(chunks)

        return self._run(_write)

    def _query(
        self,
        query_vector: list[float],
        top_k: int,
        filters: SearchFilters,
    ) -> list[RetrievalResult]:
        source_model = self._models.source
        chunk_model = self._models.chunk
        distance = chunk_model.embedding.cosine_distance(query_vector).label("distance")

        stmt = (
            select(
                chunk_model.id,
                chunk_model.chunk_index,
                chunk_model.content,
                chunk_model.metadata_,
                source_model.url,
                source_model.title,
                distance,
            )
            .join(source_model, chunk_model.source_id == source_model.id)
            .order_by(distance)
            .limit(top_k)
        )
        if filters.url is not None:
            stmt = stmt.where(source_model.url == filters.url)
        if filters.title is not None:
            stmt = stmt.where(source_model.title == filters.title)

        rows = self._run(lambda session: session.execute(stmt).all())
        return [
            RetrievalResult(
                content=row.content,
                url=row.url,
                title=row.title,
                similarity=to_similarity(Metric.COSINE_DISTANCE, row.distance),
                chunk_id=str(row.id),
                chunk_index=row.chunk_index,
                metadata=dict(row.metadata_ or {}),
            )
            for row in rows
        ]

    def list_sources(self) -> list[Source]:
        source_model = self._models.source
        chunk_model = self._models.chunk
        chunk_count = func.count(chunk_model.id).label("chunk_count")
        stmt = (
            select(source_model, chunk_count)
            .outerjoin(chunk_model, chunk_model.source_id == source_model.id)
            .group_by(source_model.id)
            .order_by(source_model.updated_at.desc())
        )
        rows = self._run(lambda session: session.execute(stmt).all())
        return [
            Source(
                url=record.url,
                title=record.title,
                description=record.description,
                crawled_at=record.updated_at,
                chunk_count=count,
            )
            for record, count in rows
        ]

    def _delete(self, url: str) -> int:
        source_model = self._models.source
        chunk_model = self._models.chunk

        def _remove(session: Session) -> int:
            with session.begin():
                source_id = session.execute(
                    select(source_model.id).where(source_model.url == url)
                ).scalar_one_or_none()
                if source_id is None:
                    return 0
                result = session.execute(
                    delete(chunk_model).where(chunk_model.source_id == source_id)
                )
                session.execute(delete(source_model).where(source_model.id == source_id))
                return int(result.rowcount or 0)

        return self._run(_remove)

    def _health(self) -> IndexHealth:
        chunk_model = self._models.chunk
        count = self._run(
            lambda session: session.execute(select(func.count()).select_from(chunk_model)).scalar()
        )
        return IndexHealth(has_data=bool(count), count=int(count or 0))

    def _run(self, operation: Callable[[Session], T]) -> T:
        with self._translate_errors():
            ensure_engine(self._database_url)
            with get_session() as session:
                return operation(session)

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        # Dropped connections, missing tables and rejected statements alike.
        try:
            yield
        except SQLAlchemyError as exc:
            raise IndexUnavailable(f"pgvector: {getattr(exc, 'orig', None) or exc}") from exc
