"""
Pydantic模型定义（HTTP请求/响应）
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.types import DocumentType


class _CamelModel(BaseModel):
    """按 camelCase 别名收发，兼容前端字段名"""
    model_config = ConfigDict(populate_by_name=True)


# =====================================================
# 文档
# =====================================================

class DocumentUploadRequest(BaseModel):
    """上传文档（文本已由调用方提取）"""
    type: str = Field(..., description="'resume' | 'job_description'")
    filename: str = Field(..., description="原始文件名")
    text: str = Field(..., description="文档全文")


class DocumentInfo(_CamelModel):
    id: str
    type: DocumentType
    filename: str
    chunks_count: Optional[int] = Field(None, alias="chunksCount")
    created_at: datetime = Field(..., alias="createdAt")


class DocumentUploadResponse(BaseModel):
    message: str
    document: DocumentInfo


class DocumentListResponse(BaseModel):
    documents: List[DocumentInfo]


class MessageResponse(BaseModel):
    message: str


# =====================================================
# 面试会话
# =====================================================

class ChatMessageView(BaseModel):
    """会话中的单条消息"""
    role: str
    content: str
    score: Optional[int] = None
    timestamp: datetime


class ChatStartResponse(_CamelModel):
    chat_id: str = Field(..., alias="chatId")
    messages: List[ChatMessageView]


class ChatQueryRequest(_CamelModel):
    message: Optional[str] = None
    chat_id: Optional[str] = Field(None, alias="chatId")


class CitationResponse(BaseModel):
    type: DocumentType
    text: str
    relevance: int


class ChatQueryResponse(_CamelModel):
    response: str
    score: Optional[int] = None
    is_complete: bool = Field(..., alias="isComplete")
    question_count: int = Field(..., alias="questionCount")
    citations: Optional[List[CitationResponse]] = None


class ChatResetResponse(_CamelModel):
    message: str
    deleted_count: int = Field(..., alias="deletedCount")


class ChatHistoryResponse(BaseModel):
    messages: List[ChatMessageView]
