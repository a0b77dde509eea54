"""
FastAPI 入口
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from core.config import interview_settings
from logs import setup_logger, metrics
from nlp.exceptions import (
    DocumentNotFoundError,
    InterviewError,
    InvalidInputError,
    LLMError,
    SessionNotFoundError,
)
from services.document_service import DocumentService
from services.embed_service import embedding_service
from services.evaluator import Evaluator
from services.interview_service import InterviewService
from services.llm_service import llm_service
from services.rag_service import rag_service
from storage.file_store import LocalFileStore
from storage.memory import InMemoryDocumentStore, InMemorySessionStore
from storage.pg import pg_pool
from api_routes import router

logger = setup_logger(__name__)


def build_services():
    """按配置组装文档服务和面试服务"""
    if settings.PG_ENABLED:
        from storage.dao import document_dao, session_dao
        documents, sessions = document_dao, session_dao
    else:
        logger.info("PostgreSQL未启用，使用内存存储")
        documents, sessions = InMemoryDocumentStore(), InMemorySessionStore()

    document_service = DocumentService(
        documents,
        LocalFileStore(settings.UPLOAD_DIR),
        embedding_service,
        interview_settings,
        max_upload_bytes=settings.UPLOAD_MAX_BYTES
    )
    interview_service = InterviewService(
        documents,
        sessions,
        embedding_service,
        rag_service,
        Evaluator(llm_service, interview_settings),
        interview_settings
    )
    return document_service, interview_service


def create_app(
    document_service: Optional[DocumentService] = None,
    interview_service: Optional[InterviewService] = None
) -> FastAPI:
    """创建FastAPI应用（测试可注入服务）"""
    if document_service is None or interview_service is None:
        default_documents, default_interviews = build_services()
        document_service = document_service or default_documents
        interview_service = interview_service or default_interviews

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        logger.info("🚀 启动应用...")
        if settings.PG_ENABLED:
            await pg_pool.initialize()
            if not pg_pool.pool:
                logger.warning("PostgreSQL未初始化，文档与会话无法持久化，请检查配置和服务状态")

        yield

        logger.info("🛑 关闭应用...")
        await llm_service.close()
        if pg_pool.pool:
            await pg_pool.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )
    app.state.document_service = document_service
    app.state.interview_service = interview_service

    # 添加CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InterviewError)
    async def interview_error_handler(request: Request, exc: InterviewError):
        if isinstance(exc, InvalidInputError):
            status = 400
        elif isinstance(exc, (SessionNotFoundError, DocumentNotFoundError)):
            status = 404
        else:
            status = 500
            if isinstance(exc, LLMError):
                logger.error(f"{request.url.path} 生成失败: {exc.message}")
            else:
                logger.error(f"{request.url.path} 处理失败: {exc.message}")
        return JSONResponse(status_code=status, content={"error": exc.message})

    # 注册API路由
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health():
        """健康检查端点"""
        return {
            "status": "healthy",
            "storage": "postgres" if settings.PG_ENABLED else "memory",
            "version": settings.APP_VERSION
        }

    @app.get("/metrics")
    async def get_metrics():
        """指标端点"""
        return metrics.get_all()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
