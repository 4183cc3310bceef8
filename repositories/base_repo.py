# repositories/base_repo.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, TypeVar

import aiomysql

from db.pool import DbPool
from db.tx import get_cursor, transaction

T = TypeVar("T")

# (conn, cur) -> result; conn is unused by most callers
TxFn = Callable[[Any, Any], Awaitable[T]]


class BaseRepo:
    """
    Base repository with small helpers to keep concrete repos readable.
    Repos hold SQL only; lifecycle rules live in services.

    Every helper takes an optional `cur`. Passing the cursor of an open
    transaction (see `in_tx`) runs the statement inside it; without one the
    statement runs on its own autocommit connection.
    """

    def __init__(self, db: DbPool) -> None:
        self._db = db

    @property
    def pool(self) -> aiomysql.Pool:
        return self._db.pool

    async def fetch_one(
        self, sql: str, params: Sequence[Any] | None = None, *, cur: Any = None
    ) -> Mapping[str, Any] | None:
        if cur is not None:
            await cur.execute(sql, params or ())
            return await cur.fetchone()
        async with get_cursor(self.pool, dict_rows=True) as c:
            await c.execute(sql, params or ())
            return await c.fetchone()

    async def fetch_all(
        self, sql: str, params: Sequence[Any] | None = None, *, cur: Any = None
    ) -> list[Mapping[str, Any]]:
        if cur is not None:
            await cur.execute(sql, params or ())
            return list(await cur.fetchall() or [])
        async with get_cursor(self.pool, dict_rows=True) as c:
            await c.execute(sql, params or ())
            return list(await c.fetchall() or [])

    async def execute(self, sql: str, params: Sequence[Any] | None = None, *, cur: Any = None) -> int:
        if cur is not None:
            await cur.execute(sql, params or ())
            return cur.rowcount
        async with transaction(self.pool, dict_rows=False) as (_conn, c):
            await c.execute(sql, params or ())
            return c.rowcount

    async def execute_many(self, sql: str, params_seq: Iterable[Sequence[Any]], *, cur: Any = None) -> int:
        rows = list(params_seq)
        if not rows:
            return 0
        if cur is not None:
            await cur.executemany(sql, rows)
            return cur.rowcount
        async with transaction(self.pool, dict_rows=False) as (_conn, c):
            await c.executemany(sql, rows)
            return c.rowcount

    async def insert_returning_id(self, sql: str, params: Sequence[Any] | None = None, *, cur: Any = None) -> int:
        if cur is not None:
            await cur.execute(sql, params or ())
            return int(cur.lastrowid)
        async with transaction(self.pool, dict_rows=False) as (_conn, c):
            await c.execute(sql, params or ())
            return int(c.lastrowid)

    async def in_tx(self, fn: TxFn[T]) -> T:
        """
        Run `fn(conn, cur)` inside one transaction (DictCursor rows).
        Commits when fn returns, rolls back if it raises.
        """
        async with transaction(self.pool, dict_rows=True) as (conn, cur):
            return await fn(conn, cur)
