"""
外部协作方接口
面试引擎只依赖这些协议，存储、文件、模型调用的具体实现可替换（测试中使用假实现）
"""
from typing import List, Optional, Protocol

from core.types import Document, DocumentType, InterviewSession


class DocumentStore(Protocol):
    async def find_by_owner_and_type(
        self, owner_id: str, doc_type: DocumentType
    ) -> Optional[Document]: ...

    async def find_by_owner(self, owner_id: str) -> List[Document]: ...

    async def find_by_id(self, doc_id: str) -> Optional[Document]: ...

    async def save(self, document: Document) -> Document: ...

    async def delete(self, doc_id: str) -> bool: ...


class SessionStore(Protocol):
    async def find_active_by_owner(self, owner_id: str) -> Optional[InterviewSession]: ...

    async def find_by_id(self, session_id: str) -> Optional[InterviewSession]: ...

    async def create_if_none_active(self, session: InterviewSession) -> InterviewSession:
        """保存新会话；若该用户已有进行中的会话则原样返回已有会话"""
        ...

    async def save(self, session: InterviewSession) -> InterviewSession:
        """更新已有会话并刷新 updated_at；会话已被删除时抛出 SessionNotFoundError"""
        ...

    async def delete_active(self, owner_id: str) -> int: ...


class FileStore(Protocol):
    async def put(self, data: bytes, key: str) -> str: ...

    async def delete(self, key: str) -> None: ...


class EmbeddingBackend(Protocol):
    """远程embedding模型：失败时抛出异常"""

    async def embed_texts(self, texts: List[str]) -> List[List[float]]: ...


class GenerationBackend(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...
