import aiosqlite
import os

from logger import logger


conn: aiosqlite.Connection | None = None

# 所有 store 共用一张文档表: 每个 store 名对应一份完整 JSON 文档
_INIT_SQL_V1 = """
CREATE TABLE IF NOT EXISTS documents (
    name TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    updated_at_utc TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


async def init_db(db_path: str) -> None:
    """打开数据库连接, 数据目录不存在时自动创建"""
    db_dir = os.path.dirname(str(db_path))
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
    global conn
    conn = await aiosqlite.connect(str(db_path))

    async with conn.execute("PRAGMA user_version") as cursor:
        row = await cursor.fetchone()
        user_version = row[0]

    if user_version == 0:
        logger.info(f"初始化数据库: {db_path}")
        await conn.executescript(_INIT_SQL_V1)
        await conn.execute("PRAGMA user_version = 1")

    # 数据库升级逻辑可以在这里继续添加
    await conn.commit()


async def close_db() -> None:
    global conn
    if conn is not None:
        await conn.close()
        conn = None


__all__ = ["conn", "init_db", "close_db"]
