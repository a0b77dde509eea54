"""
API路由模块
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from core.types import Document
from logs import setup_logger
from services.document_service import DocumentService
from services.interview_service import InterviewService
from utils.schemas import (
    ChatHistoryResponse, ChatMessageView,
    ChatQueryRequest, ChatQueryResponse, CitationResponse,
    ChatResetResponse, ChatStartResponse,
    DocumentInfo, DocumentListResponse,
    DocumentUploadRequest, DocumentUploadResponse,
    MessageResponse
)

logger = setup_logger(__name__)

# 创建路由器
router = APIRouter()


def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    """调用方身份（认证由上游网关完成）"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def get_interview_service(request: Request) -> InterviewService:
    return request.app.state.interview_service


def _document_info(doc: Document, with_chunks: bool = False) -> DocumentInfo:
    return DocumentInfo(
        id=doc.id,
        type=doc.type,
        filename=doc.filename,
        chunks_count=len(doc.chunks) if with_chunks else None,
        created_at=doc.created_at
    )


# =====================================================
# 文档
# =====================================================

@router.post("/documents/upload", response_model=DocumentUploadResponse)
async def upload_document(
    request: DocumentUploadRequest,
    owner_id: str = Depends(get_owner_id),
    service: DocumentService = Depends(get_document_service)
):
    """上传简历或岗位描述（同类型文档会被替换）"""
    document = await service.upload(owner_id, request.type, request.filename, request.text)
    return DocumentUploadResponse(
        message="Document uploaded successfully",
        document=_document_info(document, with_chunks=True)
    )


@router.get("/documents/list", response_model=DocumentListResponse, response_model_exclude_none=True)
async def list_documents(
    owner_id: str = Depends(get_owner_id),
    service: DocumentService = Depends(get_document_service)
):
    documents = await service.list(owner_id)
    return DocumentListResponse(documents=[_document_info(d) for d in documents])


@router.delete("/documents/{doc_id}", response_model=MessageResponse)
async def delete_document(
    doc_id: str,
    owner_id: str = Depends(get_owner_id),
    service: DocumentService = Depends(get_document_service)
):
    await service.delete(owner_id, doc_id)
    return MessageResponse(message="Document deleted successfully")


# =====================================================
# 面试会话
# =====================================================

@router.post("/chat/start", response_model=ChatStartResponse)
async def start_chat(
    owner_id: str = Depends(get_owner_id),
    service: InterviewService = Depends(get_interview_service)
):
    """开始面试（已有进行中的会话时直接返回）"""
    session = await service.start(owner_id)
    return ChatStartResponse(
        chat_id=session.id,
        messages=[
            ChatMessageView(role=m.role, content=m.content, timestamp=m.timestamp)
            for m in session.messages
        ]
    )


@router.post("/chat/query", response_model=ChatQueryResponse)
async def query_chat(
    request: ChatQueryRequest,
    owner_id: str = Depends(get_owner_id),
    service: InterviewService = Depends(get_interview_service)
):
    """提交回答；第三次回答后返回综合评估、总分和引用"""
    outcome = await service.submit_answer(owner_id, request.chat_id or "", request.message or "")
    citations = None
    if outcome.citations is not None:
        citations = [
            CitationResponse(type=c.type, text=c.text, relevance=c.relevance)
            for c in outcome.citations
        ]
    return ChatQueryResponse(
        response=outcome.response,
        score=outcome.score,
        is_complete=outcome.is_complete,
        question_count=outcome.question_count,
        citations=citations
    )


@router.delete("/chat/reset", response_model=ChatResetResponse)
async def reset_chat(
    owner_id: str = Depends(get_owner_id),
    service: InterviewService = Depends(get_interview_service)
):
    deleted = await service.reset(owner_id)
    return ChatResetResponse(message="Chat session reset successfully", deleted_count=deleted)


@router.get("/chat/history/{chat_id}", response_model=ChatHistoryResponse)
async def chat_history(
    chat_id: str,
    owner_id: str = Depends(get_owner_id),
    service: InterviewService = Depends(get_interview_service)
):
    messages = await service.history(owner_id, chat_id)
    return ChatHistoryResponse(messages=[
        ChatMessageView(role=m.role, content=m.content, score=m.score, timestamp=m.timestamp)
        for m in messages
    ])
