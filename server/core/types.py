"""
核心类型定义
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Literal, Optional, Any
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class DocumentType(str, Enum):
    """文档类型"""
    RESUME = "resume"
    JOB_DESCRIPTION = "job_description"


class ChunkMetadata(BaseModel):
    """片段元数据"""
    chunk_index: int
    page_number: int  # 近似页码：index // 3 + 1


class Chunk(BaseModel):
    """文档片段（文本 + 向量）"""
    text: str
    embedding: List[float]
    metadata: ChunkMetadata

    @property
    def index(self) -> int:
        return self.metadata.chunk_index

    @property
    def page_number(self) -> int:
        return self.metadata.page_number


class Document(BaseModel):
    """上传的简历或岗位描述"""
    id: str = Field(default_factory=new_id)
    owner_id: str
    type: DocumentType
    filename: str = ""
    storage_key: str = ""
    storage_url: str = ""
    full_text: str
    chunks: List[Chunk] = []
    created_at: datetime = Field(default_factory=utcnow)


class Citation(BaseModel):
    """评估消息引用的文档片段"""
    document_id: str
    chunk_index: int
    text: str


class Message(BaseModel):
    """会话消息"""
    role: Literal["system", "user", "assistant"]
    content: str
    score: Optional[int] = Field(None, ge=1, le=10)
    citations: Optional[List[Citation]] = None
    timestamp: datetime = Field(default_factory=utcnow)


class InterviewSession(BaseModel):
    """一次完整的三问面试"""
    id: str = Field(default_factory=new_id)
    owner_id: str
    resume_doc_id: str
    job_description_doc_id: str
    messages: List[Message] = []
    question_count: int = Field(0, ge=0, le=3)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Match(BaseModel):
    """相似度检索命中的片段"""
    document_id: str
    document_type: DocumentType
    chunk_index: int
    text: str
    similarity: float
    metadata: Optional[Dict[str, Any]] = None


class QAPair(BaseModel):
    """问答对"""
    question: str
    answer: str


class EmbeddingResult(BaseModel):
    """
    向量生成结果
    degraded=True 表示远程模型失败，向量来自本地确定性降级算法
    """
    vector: List[float]
    degraded: bool = False
    error: Optional[str] = None
