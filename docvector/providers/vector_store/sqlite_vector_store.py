"""SQLite-backed vector store.

Persists documents and their embedding records to a local SQLite database
(``data/docvector.db`` by default) using ``aiosqlite`` for async I/O.
Vectors are stored as JSON arrays; ranking happens in the retrieval
service, so the store only needs to return candidate rows.

Each :meth:`SQLiteVectorStore.save_document` call runs in a single
``BEGIN IMMEDIATE`` transaction: the document row, every embedding row and
the first-seen dimension marker commit together or not at all.  A reader
on another connection therefore sees either none or all of a document's
records.
"""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite
import structlog

from docvector.interfaces.vector_store_provider import IVectorStoreProvider
from docvector.models.document import Document, EmbeddingRecord, SourceKind
from docvector.utils.errors import ConfigurationError, PersistenceError
from docvector.utils.similarity import common_dimension

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docvector.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL,
    source_kind  TEXT NOT NULL,
    scope_id     TEXT NOT NULL,
    source_url   TEXT,
    raw_text     TEXT NOT NULL,
    content      TEXT NOT NULL,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS embeddings (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id     TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    sequence_index  INTEGER NOT NULL,
    content         TEXT    NOT NULL,
    embedding       TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS store_meta (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_embeddings_document ON embeddings(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_scope ON documents(scope_id);",
]

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, name, description, source_kind, scope_id, source_url, raw_text, content)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_EMBEDDING_SQL = """\
INSERT INTO embeddings (document_id, sequence_index, content, embedding)
VALUES (?, ?, ?, ?);
"""

_SELECT_DIMENSION_SQL = "SELECT value FROM store_meta WHERE key = 'dimension';"

_INSERT_DIMENSION_SQL = (
    "INSERT OR IGNORE INTO store_meta (key, value) VALUES ('dimension', ?);"
)

_SELECT_EMBEDDINGS_SQL = """\
SELECT e.document_id, e.sequence_index, e.content, e.embedding
FROM embeddings e
JOIN documents d ON d.id = e.document_id
WHERE (? IS NULL OR d.scope_id = ?)
ORDER BY e.id;
"""

_SELECT_DOCUMENT_SQL = """\
SELECT id, name, description, source_kind, scope_id, source_url, raw_text, content
FROM documents WHERE id = ?;
"""


class SQLiteVectorStore(IVectorStoreProvider):
    """SQLite-backed document and embedding persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                for table_sql in _CREATE_TABLES_SQL:
                    await db.execute(table_sql)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Could not initialize {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("vector_store_initialized", path=str(self._db_path))

    async def save_document(self, document: Document, records: list[EmbeddingRecord]) -> str:
        try:
            dimension = common_dimension([record.embedding for record in records])
        except ValueError as exc:
            raise ConfigurationError(
                message=str(exc), provider_name=self.get_provider_name()
            ) from exc
        rows = [
            (
                document.id,
                record.sequence_index,
                record.content,
                json.dumps(record.embedding),
            )
            for record in records
        ]

        try:
            async with aiosqlite.connect(str(self._db_path), timeout=30.0) as db:
                await db.execute("PRAGMA foreign_keys = ON;")
                await db.execute("BEGIN IMMEDIATE;")
                try:
                    if dimension is not None:
                        await self._check_dimension(db, dimension)
                        await db.execute(_INSERT_DIMENSION_SQL, (str(dimension),))
                    await db.execute(
                        _INSERT_DOCUMENT_SQL,
                        (
                            document.id,
                            document.name,
                            document.description,
                            document.source_kind.value,
                            document.scope_id,
                            document.source_url,
                            document.raw_text,
                            document.content,
                        ),
                    )
                    await db.executemany(_INSERT_EMBEDDING_SQL, rows)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to save document {document.id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "document_saved",
            document_id=document.id,
            records=len(records),
            dimension=dimension,
        )
        return document.id

    async def query_embeddings(self, scope_id: str | None = None) -> list[EmbeddingRecord]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_EMBEDDINGS_SQL, (scope_id, scope_id))
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to query embeddings: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        return [
            EmbeddingRecord(
                resource_id=document_id,
                sequence_index=sequence_index,
                content=content,
                embedding=json.loads(embedding),
            )
            for document_id, sequence_index, content, embedding in rows
        ]

    async def get_document(self, document_id: str) -> Document | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(_SELECT_DOCUMENT_SQL, (document_id,))
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to read document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if row is None:
            return None
        values = dict(row)
        values["source_kind"] = SourceKind(values["source_kind"])
        return Document(**values)

    async def delete_document(self, document_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("BEGIN IMMEDIATE;")
                cursor = await db.execute(
                    "DELETE FROM embeddings WHERE document_id = ?;", (document_id,)
                )
                removed = cursor.rowcount
                await db.execute("DELETE FROM documents WHERE id = ?;", (document_id,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to delete document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_deleted", document_id=document_id, records=removed)
        return removed

    async def get_dimension(self) -> int | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(_SELECT_DIMENSION_SQL)
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to read store dimension: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return int(row[0]) if row else None

    def get_provider_name(self) -> str:
        return "sqlite"

    async def _check_dimension(self, db: aiosqlite.Connection, dimension: int) -> None:
        cursor = await db.execute(_SELECT_DIMENSION_SQL)
        row = await cursor.fetchone()
        if row is not None and int(row[0]) != dimension:
            raise ConfigurationError(
                message=(
                    f"Embedding dimension {dimension} does not match the "
                    f"{row[0]}-dimensional vectors already stored"
                ),
                provider_name=self.get_provider_name(),
            )
