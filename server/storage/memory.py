"""
内存存储（未启用PostgreSQL时使用，测试也使用它）
"""
import asyncio
from typing import Dict, List, Optional

from core.types import Document, DocumentType, InterviewSession, utcnow
from logs import setup_logger
from nlp.exceptions import SessionNotFoundError

logger = setup_logger(__name__)


class InMemoryDocumentStore:
    """文档存储"""

    def __init__(self):
        self._docs: Dict[str, Document] = {}

    async def find_by_owner_and_type(
        self, owner_id: str, doc_type: DocumentType
    ) -> Optional[Document]:
        for doc in self._docs.values():
            if doc.owner_id == owner_id and doc.type == doc_type:
                return doc.model_copy(deep=True)
        return None

    async def find_by_owner(self, owner_id: str) -> List[Document]:
        docs = [d.model_copy(deep=True) for d in self._docs.values() if d.owner_id == owner_id]
        return sorted(docs, key=lambda d: d.created_at, reverse=True)

    async def find_by_id(self, doc_id: str) -> Optional[Document]:
        doc = self._docs.get(doc_id)
        return doc.model_copy(deep=True) if doc else None

    async def save(self, document: Document) -> Document:
        self._docs[document.id] = document.model_copy(deep=True)
        return document

    async def delete(self, doc_id: str) -> bool:
        return self._docs.pop(doc_id, None) is not None


class InMemorySessionStore:
    """面试会话存储"""

    def __init__(self):
        self._sessions: Dict[str, InterviewSession] = {}
        self._lock = asyncio.Lock()

    def _active_for(self, owner_id: str) -> Optional[InterviewSession]:
        for session in self._sessions.values():
            if session.owner_id == owner_id and session.is_active:
                return session
        return None

    async def find_active_by_owner(self, owner_id: str) -> Optional[InterviewSession]:
        session = self._active_for(owner_id)
        return session.model_copy(deep=True) if session else None

    async def find_by_id(self, session_id: str) -> Optional[InterviewSession]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def create_if_none_active(self, session: InterviewSession) -> InterviewSession:
        async with self._lock:
            existing = self._active_for(session.owner_id)
            if existing:
                return existing.model_copy(deep=True)
            session.updated_at = utcnow()
            self._sessions[session.id] = session.model_copy(deep=True)
            return session

    async def save(self, session: InterviewSession) -> InterviewSession:
        """
        更新已有会话

        Raises:
            SessionNotFoundError: 会话已被删除（例如处理回答期间被重置）
        """
        async with self._lock:
            if session.id not in self._sessions:
                raise SessionNotFoundError("Chat session not found")
            session.updated_at = utcnow()
            self._sessions[session.id] = session.model_copy(deep=True)
        return session

    async def delete_active(self, owner_id: str) -> int:
        async with self._lock:
            ids = [s.id for s in self._sessions.values() if s.owner_id == owner_id and s.is_active]
            for session_id in ids:
                del self._sessions[session_id]
        if ids:
            logger.info(f"已删除用户 {owner_id} 的 {len(ids)} 个进行中会话")
        return len(ids)
