import asyncpg
from dataclasses import dataclass, field
from typing import List, Optional

from app.logging import get_logger

logger = get_logger("db.scripts")


@dataclass
class ScriptRecord:
    title: str
    content: str
    description: Optional[str] = None
    scene_descriptions: List[str] = field(default_factory=list)


SAMPLE_SCRIPT = ScriptRecord(
    title="Sample Script",
    description="This is a sample script for testing purposes",
    content=(
        "INT. SAMPLE SCENE - DAY\n\n"
        "Character walks into the room and looks around.\n\n"
        "CHARACTER\nHello, is anyone here?"
    ),
    scene_descriptions=["INT. SAMPLE SCENE - DAY", "Character walks into the room"],
)


async def init_scripts(conn: asyncpg.Connection) -> None:
    """Create the scripts table if missing and seed it with a sample row when empty."""
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS public.scripts (
            id SERIAL PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            content TEXT NOT NULL DEFAULT '',
            scene_descriptions TEXT[] NOT NULL DEFAULT '{}'
        )
        """
    )
    count = await conn.fetchval("SELECT count(*) FROM public.scripts")
    if count == 0:
        await add_script(conn, SAMPLE_SCRIPT)
        logger.info("seeded scripts table with sample script")


async def add_script(conn: asyncpg.Connection, script: ScriptRecord) -> None:
    await conn.execute(
        "INSERT INTO public.scripts (title, description, content, scene_descriptions) VALUES ($1, $2, $3, $4)",
        script.title, script.description, script.content, script.scene_descriptions
    )


def _like_pattern(keyword: str) -> str:
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def search_scripts(conn: asyncpg.Connection, keywords: List[str], limit: int = 3) -> List[ScriptRecord]:
    """
    Case-insensitive OR match of any keyword against title, content or any scene description.
    Rows come back in insertion order (id ascending) so results are stable between calls.
    """
    if not keywords:
        return []
    patterns = [_like_pattern(k) for k in keywords]
    rows = await conn.fetch(
        """
        SELECT title, description, content, scene_descriptions
        FROM public.scripts
        WHERE title ILIKE ANY($1::text[])
           OR content ILIKE ANY($1::text[])
           OR EXISTS (
               SELECT 1 FROM unnest(scene_descriptions) AS d
               WHERE d ILIKE ANY($1::text[])
           )
        ORDER BY id ASC
        LIMIT $2
        """,
        patterns,
        limit,
    )
    return [
        ScriptRecord(
            title=row["title"],
            description=row["description"],
            content=row["content"] or "",
            scene_descriptions=list(row["scene_descriptions"] or []),
        )
        for row in rows
    ]


class ScriptStore:
    """Document store handed to the context resolver. Owns no connection itself; borrows from the pool."""

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def search(self, keywords: List[str], limit: int = 3) -> List[ScriptRecord]:
        async with self._pool.acquire() as conn:
            return await search_scripts(conn, keywords, limit)

    async def ping(self) -> bool:
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"database ping failed: {e}")
            return False
