from __future__ import annotations

import os, sys
from dataclasses import asdict

HERE = os.path.dirname(__file__)
ROOT = os.path.abspath(os.path.join(HERE, "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import asyncio
from config import load_config
from db.pool import DbPool, MySqlPoolConfig
from db.tx import get_cursor

SMOKE_GUILD_ID = 999000111222333444

async def main() -> None:
    cfg = load_config()
    guild_id = int(os.getenv("SMOKE_GUILD_ID") or SMOKE_GUILD_ID)

    db = DbPool()
    await db.start(MySqlPoolConfig(**asdict(cfg.mysql)))

    # groups, teams and matches go with the competition (ON DELETE CASCADE)
    async with get_cursor(db.pool, dict_rows=False) as cur:
        await cur.execute("DELETE FROM competition WHERE guild_id=%s AND name LIKE 'SMOKE\\_%%';", (guild_id,))
        print(f"OK: {cur.rowcount} competition(s) deleted")

    await db.close()
    print(f"OK: cleanup done for guild {guild_id}")

if __name__ == "__main__":
    asyncio.run(main())
