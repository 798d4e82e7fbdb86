from psycopg.rows import dict_row

from doclyze.database.connection import get_connection
from doclyze.domain.exceptions import ProjectNotFoundError
from doclyze.domain.models import Project, TranscriptRole, TranscriptTurn


class ProjectRepository:
    """Database operations for projects and their chat transcript."""

    def find_by_id(self, project_id: int, transcript_limit: int | None = None) -> Project:
        """Load a project with the tail of its transcript (all turns if no limit).

        Raises:
            ProjectNotFoundError: if no project with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, name, owner_id, guest_owner_id
                    FROM projects
                    WHERE id = %s
                    """,
                    (project_id,),
                )
                row = cur.fetchone()
            if row is None:
                raise ProjectNotFoundError(f"Project {project_id} not found")
            transcript = self._load_transcript(conn, project_id, transcript_limit)

        return Project(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            guest_owner_id=row["guest_owner_id"],
            transcript=transcript,
        )

    def append_transcript(self, project_id: int, turns: list[TranscriptTurn]) -> None:
        """Append turns in order, in one transaction."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    """
                    INSERT INTO project_transcript_turns (project_id, role, text)
                    VALUES (%s, %s, %s)
                    """,
                    [(project_id, turn.role.value, turn.text) for turn in turns],
                )
            conn.commit()

    @staticmethod
    def _load_transcript(conn, project_id: int, limit: int | None) -> list[TranscriptTurn]:  # type: ignore[no-untyped-def]
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT role, text FROM (
                    SELECT id, role, text
                    FROM project_transcript_turns
                    WHERE project_id = %s
                    ORDER BY id DESC
                    LIMIT %s
                ) AS tail
                ORDER BY id
                """,
                (project_id, limit),
            )
            rows = cur.fetchall()
        return [TranscriptTurn(role=TranscriptRole(r["role"]), text=r["text"]) for r in rows]
