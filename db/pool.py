# db/pool.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiomysql

log = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


@dataclass(frozen=True)
class MySqlPoolConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


def split_sql_script(script: str) -> list[str]:
    """Split a plain DDL script on `;` (no procedures/strings with semicolons)."""
    statements: list[str] = []
    for chunk in script.split(";"):
        lines = [ln for ln in chunk.splitlines() if ln.strip() and not ln.strip().startswith("--")]
        stmt = "\n".join(lines).strip()
        if stmt:
            statements.append(stmt)
    return statements


class DbPool:
    """
    Owns the aiomysql pool for the process.
    - start() once at startup, close() on shutdown
    - repositories borrow connections through `pool`
    """

    def __init__(self) -> None:
        self._pool: Optional[aiomysql.Pool] = None

    @property
    def pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call await DbPool.start() first.")
        return self._pool

    async def start(self, cfg: MySqlPoolConfig) -> None:
        if self._pool is not None:
            return

        self._pool = await aiomysql.create_pool(
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            db=cfg.database,
            minsize=cfg.minsize,
            maxsize=cfg.maxsize,
            connect_timeout=cfg.connect_timeout,
            autocommit=True,  # single statements commit on their own; services open explicit transactions
            charset="utf8mb4",
        )
        await self.ping()
        log.info("DB pool ready (%s@%s:%s/%s)", cfg.user, cfg.host, cfg.port, cfg.database)

    async def ping(self) -> None:
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1;")
                await cur.fetchone()

    async def apply_schema(self, path: Path = SCHEMA_PATH) -> int:
        """Create missing tables from db/schema.sql. Returns statements executed."""
        statements = split_sql_script(path.read_text(encoding="utf-8"))
        async with self.pool.acquire() as conn:
            async with conn.cursor() as cur:
                for stmt in statements:
                    await cur.execute(stmt)
        log.info("Applied %d schema statement(s) from %s", len(statements), path.name)
        return len(statements)

    async def close(self) -> None:
        if self._pool is None:
            return
        self._pool.close()
        await self._pool.wait_closed()
        self._pool = None
