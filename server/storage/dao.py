"""
documents/interview_sessions CRUD操作（PostgreSQL）
"""
import json
from typing import Any, Dict, List, Optional

from core.types import Document, DocumentType, InterviewSession, utcnow
from storage.pg import PostgreSQLPool, pg_pool
from logs import setup_logger
from nlp.exceptions import SessionNotFoundError

logger = setup_logger(__name__)


def _load_json(value: Any) -> Any:
    """asyncpg 默认把 JSONB 作为字符串返回"""
    if isinstance(value, str):
        return json.loads(value)
    return value


class DocumentDAO:
    """Document数据访问对象"""

    def __init__(self, pool: PostgreSQLPool = pg_pool):
        self.pool = pool

    def _to_document(self, row) -> Document:
        data = dict(row)
        data["chunks"] = _load_json(data.get("chunks")) or []
        return Document.model_validate(data)

    async def find_by_owner_and_type(
        self, owner_id: str, doc_type: DocumentType
    ) -> Optional[Document]:
        row = await self.pool.fetchrow(
            """
                SELECT * FROM documents
                WHERE owner_id = $1 AND type = $2
                ORDER BY created_at DESC
                LIMIT 1
            """,
            owner_id,
            DocumentType(doc_type).value
        )
        return self._to_document(row) if row else None

    async def find_by_owner(self, owner_id: str) -> List[Document]:
        rows = await self.pool.fetch(
            "SELECT * FROM documents WHERE owner_id = $1 ORDER BY created_at DESC",
            owner_id
        )
        return [self._to_document(row) for row in rows]

    async def find_by_id(self, doc_id: str) -> Optional[Document]:
        row = await self.pool.fetchrow("SELECT * FROM documents WHERE id = $1", doc_id)
        return self._to_document(row) if row else None

    async def save(self, document: Document) -> Document:
        """
        保存文档（按id插入或覆盖）

        Args:
            document: 文档对象

        Returns:
            保存后的文档
        """
        chunks_json = json.dumps([c.model_dump(mode="json") for c in document.chunks])
        await self.pool.execute(
            """
                INSERT INTO documents
                    (id, owner_id, type, filename, storage_key, storage_url, full_text, chunks, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9)
                ON CONFLICT (id) DO UPDATE SET
                    filename = EXCLUDED.filename,
                    storage_key = EXCLUDED.storage_key,
                    storage_url = EXCLUDED.storage_url,
                    full_text = EXCLUDED.full_text,
                    chunks = EXCLUDED.chunks
            """,
            document.id,
            document.owner_id,
            document.type.value,
            document.filename,
            document.storage_key,
            document.storage_url,
            document.full_text,
            chunks_json,
            document.created_at
        )
        logger.info(f"保存文档成功: id={document.id}, 片段数={len(document.chunks)}")
        return document

    async def delete(self, doc_id: str) -> bool:
        result = await self.pool.execute("DELETE FROM documents WHERE id = $1", doc_id)
        return result.endswith(" 1")


class SessionDAO:
    """InterviewSession数据访问对象"""

    def __init__(self, pool: PostgreSQLPool = pg_pool):
        self.pool = pool

    def _to_session(self, row) -> InterviewSession:
        data: Dict[str, Any] = dict(row)
        data["messages"] = _load_json(data.get("messages")) or []
        return InterviewSession.model_validate(data)

    def _messages_json(self, session: InterviewSession) -> str:
        return json.dumps([m.model_dump(mode="json") for m in session.messages], ensure_ascii=False)

    async def find_active_by_owner(self, owner_id: str) -> Optional[InterviewSession]:
        row = await self.pool.fetchrow(
            "SELECT * FROM interview_sessions WHERE owner_id = $1 AND is_active",
            owner_id
        )
        return self._to_session(row) if row else None

    async def find_by_id(self, session_id: str) -> Optional[InterviewSession]:
        row = await self.pool.fetchrow("SELECT * FROM interview_sessions WHERE id = $1", session_id)
        return self._to_session(row) if row else None

    async def create_if_none_active(self, session: InterviewSession) -> InterviewSession:
        """
        仅当用户没有进行中的会话时插入（依赖部分唯一索引）

        Returns:
            新建的会话，或已存在的进行中会话
        """
        session.updated_at = utcnow()
        row = await self.pool.fetchrow(
            """
                INSERT INTO interview_sessions
                    (id, owner_id, resume_doc_id, job_description_doc_id,
                     messages, question_count, is_active, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9)
                ON CONFLICT (owner_id) WHERE is_active DO NOTHING
                RETURNING id
            """,
            session.id,
            session.owner_id,
            session.resume_doc_id,
            session.job_description_doc_id,
            self._messages_json(session),
            session.question_count,
            session.is_active,
            session.created_at,
            session.updated_at
        )
        if row:
            return session

        existing = await self.find_active_by_owner(session.owner_id)
        if existing is None:
            raise RuntimeError(f"创建会话冲突但未找到进行中的会话: owner={session.owner_id}")
        return existing

    async def save(self, session: InterviewSession) -> InterviewSession:
        """
        更新已有会话并刷新 updated_at

        Raises:
            SessionNotFoundError: 会话已被删除
        """
        session.updated_at = utcnow()
        result = await self.pool.execute(
            """
                UPDATE interview_sessions
                SET messages = $2::jsonb,
                    question_count = $3,
                    is_active = $4,
                    updated_at = $5
                WHERE id = $1
            """,
            session.id,
            self._messages_json(session),
            session.question_count,
            session.is_active,
            session.updated_at
        )
        if result == "UPDATE 0":
            raise SessionNotFoundError("Chat session not found")
        return session

    async def delete_active(self, owner_id: str) -> int:
        result = await self.pool.execute(
            "DELETE FROM interview_sessions WHERE owner_id = $1 AND is_active",
            owner_id
        )
        # asyncpg 返回形如 "DELETE 1" 的状态字符串
        return int(result.split()[-1])


# 全局实例
document_dao = DocumentDAO()
session_dao = SessionDAO()
