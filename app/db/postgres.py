import asyncpg
from app.config import settings
from app.db.scripts import init_scripts

async def create_db_pool() -> asyncpg.Pool:
    """Open the pool and make sure the scripts table exists before the app serves requests."""
    # statement_cache_size=0 is required for Supabase Transaction Pooler
    pool = await asyncpg.create_pool(dsn=settings.DB_URI, statement_cache_size=0)
    try:
        async with pool.acquire() as conn:
            await init_scripts(conn)
    except Exception:
        await pool.close()
        raise
    return pool
