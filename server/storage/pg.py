"""
PostgreSQL 连接池与表结构

文档的片段和向量、会话的消息都以 JSONB 存储；
每个用户最多一个进行中的会话由部分唯一索引保证
"""
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import asyncpg

from config import Settings, settings as app_settings
from logs import setup_logger

logger = setup_logger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS documents (
        id VARCHAR(64) PRIMARY KEY,
        owner_id VARCHAR(255) NOT NULL,
        type VARCHAR(32) NOT NULL,
        filename VARCHAR(255) NOT NULL DEFAULT '',
        storage_key TEXT NOT NULL DEFAULT '',
        storage_url TEXT NOT NULL DEFAULT '',
        full_text TEXT NOT NULL,
        chunks JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS documents_owner_type_idx
    ON documents(owner_id, type)
    """,
    """
    CREATE TABLE IF NOT EXISTS interview_sessions (
        id VARCHAR(64) PRIMARY KEY,
        owner_id VARCHAR(255) NOT NULL,
        resume_doc_id VARCHAR(64) NOT NULL,
        job_description_doc_id VARCHAR(64) NOT NULL,
        messages JSONB NOT NULL DEFAULT '[]'::jsonb,
        question_count INTEGER NOT NULL DEFAULT 0
            CHECK (question_count BETWEEN 0 AND 3),
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS interview_sessions_active_owner_idx
    ON interview_sessions(owner_id) WHERE is_active
    """,
)


class PostgreSQLPool:
    """asyncpg连接池的薄封装，未初始化时任何查询都会报错"""

    def __init__(self, settings: Settings = app_settings):
        self.settings = settings
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """建立连接池并建表；连接失败只记录日志，pool 保持为 None"""
        s = self.settings
        if not s.PG_ENABLED:
            logger.info("PostgreSQL未启用，跳过初始化")
            return
        if not all([s.PG_HOST, s.PG_DB, s.PG_USER]):
            logger.warning("PostgreSQL配置不完整，跳过初始化")
            return

        target = f"{s.PG_HOST}:{s.PG_PORT}/{s.PG_DB}"
        try:
            self.pool = await asyncpg.create_pool(
                host=s.PG_HOST,
                port=s.PG_PORT,
                database=s.PG_DB,
                user=s.PG_USER,
                password=s.PG_PASSWORD,
                min_size=2,
                max_size=10,
                timeout=10,
            )
        except asyncpg.exceptions.InvalidPasswordError:
            logger.error(f"PostgreSQL认证失败: {s.PG_USER}@{target}")
            return
        except asyncpg.exceptions.InvalidCatalogNameError:
            logger.error(f"PostgreSQL数据库不存在: {s.PG_DB}")
            return
        except OSError as e:
            logger.error(f"无法连接PostgreSQL {target}: {e}")
            return

        logger.info(f"PostgreSQL已连接: {target}")
        await self.create_tables()

    async def create_tables(self):
        async with self.connection() as conn:
            for statement in SCHEMA:
                await conn.execute(statement)
        logger.info("表结构已就绪: documents, interview_sessions")

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("PostgreSQL连接池已关闭")

    @asynccontextmanager
    async def connection(self):
        """从池中取一个连接"""
        if not self.pool:
            raise RuntimeError("PostgreSQL连接池未初始化")
        async with self.pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args) -> str:
        """执行语句，返回状态字符串（如 "DELETE 1"）"""
        async with self.connection() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        async with self.connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[Any]:
        async with self.connection() as conn:
            return await conn.fetchrow(query, *args)


# 全局连接池实例
pg_pool = PostgreSQLPool()
