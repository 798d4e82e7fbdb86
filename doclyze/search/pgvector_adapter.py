from typing import Any

import psycopg
from psycopg.rows import dict_row

from doclyze.database.connection import get_connection
from doclyze.search.base import BaseSimilaritySearch, SearchMatch
from doclyze.search.exceptions import SearchError

_FILTER_COLUMNS = ("project_id", "document_id")


class PgVectorSearch(BaseSimilaritySearch):
    """Cosine similarity over ``document_chunks.embedding`` (pgvector)."""

    def query(
        self,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,  # noqa: A002
    ) -> list[SearchMatch]:
        if top_k <= 0:
            return []
        conditions, params = _where_clause(filter or {})
        literal = "[" + ",".join(str(float(v)) for v in vector) + "]"
        sql = f"""
            SELECT c.id, c.project_id, c.document_id, c.content, d.file_name,
                   1 - (c.embedding <=> %s::vector) AS score
            FROM document_chunks c
            LEFT JOIN documents d ON d.id = c.document_id
            {conditions}
            ORDER BY c.embedding <=> %s::vector
            LIMIT %s
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(sql, (literal, *params, literal, top_k))  # type: ignore[arg-type]
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise SearchError(f"Similarity search failed: {exc}") from exc

        return [
            SearchMatch(
                score=float(row["score"]),
                metadata={
                    "chunk_id": row["id"],
                    "project_id": row["project_id"],
                    "document_id": row["document_id"],
                    "file_name": row["file_name"],
                    "text": row["content"],
                },
            )
            for row in rows
        ]


def _where_clause(filter: dict[str, Any]) -> tuple[str, list[Any]]:  # noqa: A002
    unknown = set(filter) - set(_FILTER_COLUMNS)
    if unknown:
        raise SearchError(f"Unsupported search filter keys: {sorted(unknown)}")
    clauses = [f"c.{column} = %s" for column in _FILTER_COLUMNS if column in filter]
    params = [filter[column] for column in _FILTER_COLUMNS if column in filter]
    if not clauses:
        return "", []
    return "WHERE " + " AND ".join(clauses), params
