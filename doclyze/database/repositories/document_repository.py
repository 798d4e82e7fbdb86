from typing import Any

from psycopg.rows import dict_row

from doclyze.database.connection import get_connection
from doclyze.domain.exceptions import DocumentNotFoundError
from doclyze.domain.models import Document, DocumentStatus, ProcessingState

_DOCUMENT_COLUMNS = """
    id, project_id, file_name, storage_locator, file_size_bytes, mime_type,
    processing_state, remote_handle, activation_progress
"""


class DocumentRepository:
    """Database operations for the documents table."""

    def find_by_id(self, document_id: int) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_document(row)

    def list_for_project(self, project_id: int) -> list[Document]:
        """All documents of a project, oldest first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE project_id = %s
                    ORDER BY created_at, id
                    """,
                    (project_id,),
                )
                rows = cur.fetchall()
        return [_to_document(row) for row in rows]

    def list_statuses(self, project_id: int) -> list[DocumentStatus]:
        """Status polling surface: newest documents first."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, file_name, processing_state, activation_progress
                    FROM documents
                    WHERE project_id = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (project_id,),
                )
                rows = cur.fetchall()
        return [
            DocumentStatus(
                id=row["id"],
                file_name=row["file_name"],
                processing_state=ProcessingState(row["processing_state"]),
                activation_progress=row["activation_progress"],
            )
            for row in rows
        ]

    def find_pending(self, limit: int) -> list[Document]:
        """Oldest PENDING documents, across all projects."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_DOCUMENT_COLUMNS}
                    FROM documents
                    WHERE processing_state = 'PENDING'
                    ORDER BY created_at
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
        return [_to_document(row) for row in rows]

    def transition_state(
        self,
        document_id: int,
        from_state: ProcessingState,
        to_state: ProcessingState,
    ) -> bool:
        """Compare-and-set the processing state.

        Returns False when the document was not in ``from_state`` (someone else
        already moved it), True when this call performed the transition.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_state = %s, updated_at = NOW()
                    WHERE id = %s AND processing_state = %s
                    """,
                    (to_state.value, document_id, from_state.value),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def set_remote_handle(self, document_id: int, remote_handle: str) -> None:
        """Persist the backend file reference of a document."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET remote_handle = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (remote_handle, document_id),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()

    def update_activation_progress(self, document_id: int, progress: int) -> None:
        """Persist activation progress, clamped to 0-100."""
        clamped = max(0, min(100, int(progress)))
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE documents
                SET activation_progress = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (clamped, document_id),
            )
            conn.commit()

    def fail_stale_processing(self, older_than_seconds: float) -> list[int]:
        """Mark FAILED every PROCESSING document untouched for ``older_than_seconds``.

        Returns the IDs of the documents that were failed.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_state = 'FAILED', updated_at = NOW()
                    WHERE processing_state = 'PROCESSING'
                      AND updated_at < NOW() - make_interval(secs => %s)
                    RETURNING id
                    """,
                    (older_than_seconds,),
                )
                rows = cur.fetchall()
            conn.commit()
        return [row["id"] for row in rows]


def _to_document(row: dict[str, Any]) -> Document:
    return Document(
        id=row["id"],
        project_id=row["project_id"],
        file_name=row["file_name"],
        storage_locator=row["storage_locator"] or None,
        file_size_bytes=row["file_size_bytes"],
        mime_type=row["mime_type"],
        processing_state=ProcessingState(row["processing_state"]),
        remote_handle=row["remote_handle"],
        activation_progress=row["activation_progress"],
    )
