"""add match_notes function

Revision ID: 8b24e6d1c5f3
Revises: 3f1c9a2b7d40
Create Date: 2026-10-12 10:05:52.611093

"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8b24e6d1c5f3"
down_revision: str | Sequence[str] | None = "3f1c9a2b7d40"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """
    Hybrid ranking for one owner's notes.

    Exact tag hits score 1.0 and sort first; other notes qualify when
    cosine similarity exceeds the threshold. Ties break on recency.
    """
    op.execute(
        """
        CREATE OR REPLACE FUNCTION match_notes(
            query_text text,
            query_embedding vector(1536),
            match_threshold float,
            match_count int,
            p_user_id uuid
        )
        RETURNS TABLE (
            id uuid,
            user_id uuid,
            content text,
            category text,
            tags text[],
            summary text,
            mental_model text,
            created_at timestamptz,
            similarity float,
            match_type text
        )
        LANGUAGE sql STABLE
        AS $$
            SELECT *
            FROM (
                SELECT
                    n.id,
                    n.user_id,
                    n.content,
                    n.category,
                    n.tags,
                    n.summary,
                    n.mental_model,
                    n.created_at,
                    CASE
                        WHEN query_text = ANY(n.tags) THEN 1.0::float
                        ELSE (1 - (n.embedding <=> query_embedding))::float
                    END AS similarity,
                    CASE
                        WHEN query_text = ANY(n.tags) THEN 'tag'
                        ELSE 'vector'
                    END AS match_type
                FROM notes n
                WHERE n.user_id = p_user_id
                  AND (
                    query_text = ANY(n.tags)
                    OR (
                        n.embedding IS NOT NULL
                        AND 1 - (n.embedding <=> query_embedding) > match_threshold
                    )
                  )
            ) ranked
            ORDER BY
                (ranked.match_type = 'tag') DESC,
                ranked.similarity DESC,
                ranked.created_at DESC
            LIMIT match_count;
        $$;
        """
    )


def downgrade() -> None:
    """Drop match_notes."""
    op.execute("DROP FUNCTION IF EXISTS match_notes(text, vector, float, int, uuid)")
