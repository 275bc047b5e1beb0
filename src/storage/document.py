"""文档存储 Store[T]

每个 store 是 documents 表中的一行完整 JSON 文档:
- load(): 读不到或内容损坏时返回默认值 (只记录 warning, 不抛出)
- save(state): 单条 upsert + commit, 写入失败时回滚并抛出 StorageError, 之前持久化的文档保持不变

没有部分更新: 调用方 load → 在内存中修改 → save。
多个进程并发调用时为最后写入者获胜, 不做合并。
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

import aiosqlite
import pydantic

import storage.db_config as db_config
from errors import StorageError
from logger import logger

T = TypeVar("T", bound=pydantic.BaseModel)


def _ensure_conn():
    if db_config.conn is None:
        raise RuntimeError("数据库未初始化，请先调用 init_db()")


class DocumentStore(Generic[T]):
    def __init__(self, name: str, model: type[T], default: Callable[[], T] | None = None) -> None:
        self.name = name
        self.model = model
        self._default = default or model

    def default(self) -> T:
        return self._default()

    async def load(self) -> T:
        """读取完整文档, 缺失或损坏时返回默认值"""
        _ensure_conn()
        try:
            async with db_config.conn.execute(
                "SELECT body FROM documents WHERE name = ?", (self.name,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.warning(f"读取文档失败, 使用默认值: name={self.name}, error={e}")
            return self.default()

        if row is None:
            logger.trace(f"文档不存在, 使用默认值: name={self.name}")
            return self.default()

        try:
            state = self.model.model_validate_json(row[0])
        except pydantic.ValidationError as e:
            logger.warning(f"文档内容损坏, 使用默认值: name={self.name}, errors={e.error_count()}")
            return self.default()

        logger.trace(f"读取文档: name={self.name}, size={len(row[0])}")
        return state

    async def save(self, state: T) -> None:
        """原子写入完整文档"""
        _ensure_conn()
        body = state.model_dump_json(by_alias=True, exclude_none=True)
        try:
            await db_config.conn.execute(
                "INSERT INTO documents (name, body) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET body = excluded.body, updated_at_utc = CURRENT_TIMESTAMP",
                (self.name, body),
            )
            await db_config.conn.commit()
        except aiosqlite.Error as e:
            await db_config.conn.rollback()
            logger.error(f"写入文档失败: name={self.name}, error={e}")
            raise StorageError(f"Failed to save {self.name}: {e}") from e
        logger.trace(f"写入文档: name={self.name}, size={len(body)}")


__all__ = ["DocumentStore"]
