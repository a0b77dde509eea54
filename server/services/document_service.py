"""
文档上传：切分、批量向量化、替换旧文档
PDF文本提取不在这里完成，调用方传入已提取的文本
"""
import time
from pathlib import PurePath
from typing import List, Optional

from config import settings as app_settings
from core.config import InterviewSettings, interview_settings
from core.interfaces import DocumentStore, FileStore
from core.types import Chunk, ChunkMetadata, Document, DocumentType
from logs import setup_logger, metrics
from nlp.exceptions import DocumentNotFoundError, InvalidInputError
from services.chunker import chunk_text
from services.embed_service import EmbeddingService

logger = setup_logger(__name__)


def page_number_for(index: int) -> int:
    """近似页码：每3个片段算一页"""
    return index // 3 + 1


class DocumentService:
    """文档管理服务"""

    def __init__(
        self,
        documents: DocumentStore,
        files: FileStore,
        embeddings: EmbeddingService,
        settings: InterviewSettings = interview_settings,
        max_upload_bytes: int = app_settings.UPLOAD_MAX_BYTES
    ):
        self.documents = documents
        self.files = files
        self.embeddings = embeddings
        self.max_words = settings.CHUNK_MAX_WORDS
        self.max_upload_bytes = max_upload_bytes

    async def upload(
        self,
        owner_id: str,
        doc_type: str,
        filename: str,
        text: str,
        data: Optional[bytes] = None
    ) -> Document:
        """
        上传文档（同一用户同一类型只保留最新一份）

        Args:
            owner_id: 用户ID
            doc_type: resume 或 job_description
            filename: 原始文件名
            text: 文档全文
            data: 原始文件内容（可选，缺省时保存文本）

        Returns:
            保存后的文档

        Raises:
            InvalidInputError: 类型不合法、文本为空或文件超过大小上限
        """
        try:
            dtype = DocumentType(doc_type)
        except ValueError:
            raise InvalidInputError("Invalid document type")

        if not text or not text.strip():
            raise InvalidInputError("Could not extract text from document")

        payload = data if data is not None else text.encode("utf-8")
        if len(payload) > self.max_upload_bytes:
            raise InvalidInputError(f"File too large (limit {self.max_upload_bytes} bytes)")

        existing = await self.documents.find_by_owner_and_type(owner_id, dtype)

        suffix = PurePath(filename).suffix or ".txt"
        storage_key = f"{owner_id}/{dtype.value}_{int(time.time() * 1000)}{suffix}"
        storage_url = await self.files.put(payload, storage_key)
        try:
            document = await self._build_and_save(
                owner_id, dtype, filename, text, storage_key, storage_url
            )
        except Exception:
            # 新文档未保存成功：清理刚写入的文件，旧文档保持不变
            if not existing or existing.storage_key != storage_key:
                await self.files.delete(storage_key)
            raise

        if existing:
            logger.info(f"替换旧文档: id={existing.id}, type={dtype.value}")
            await self.documents.delete(existing.id)
            if existing.storage_key != storage_key:
                await self.files.delete(existing.storage_key)

        metrics.increment("documents_ingested")
        return document

    async def _build_and_save(
        self,
        owner_id: str,
        dtype: DocumentType,
        filename: str,
        text: str,
        storage_key: str,
        storage_url: str
    ) -> Document:
        """切分、向量化并保存新文档"""
        texts = chunk_text(text, self.max_words)
        logger.info(f"处理 {len(texts)} 个片段", extra={"owner_id": owner_id, "doc_type": dtype.value})
        results = await self.embeddings.embed_batch(texts)
        if any(r.degraded for r in results):
            logger.warning(f"文档 {filename} 使用了降级向量")

        chunks = [
            Chunk(
                text=chunk,
                embedding=result.vector,
                metadata=ChunkMetadata(chunk_index=i, page_number=page_number_for(i))
            )
            for i, (chunk, result) in enumerate(zip(texts, results))
        ]

        document = Document(
            owner_id=owner_id,
            type=dtype,
            filename=filename,
            storage_key=storage_key,
            storage_url=storage_url,
            full_text=text,
            chunks=chunks
        )
        await self.documents.save(document)
        return document

    async def list(self, owner_id: str) -> List[Document]:
        """用户的全部文档（新的在前）"""
        return await self.documents.find_by_owner(owner_id)

    async def delete(self, owner_id: str, doc_id: str) -> None:
        """
        删除文档

        Raises:
            DocumentNotFoundError: 文档不存在或不属于该用户
        """
        document = await self.documents.find_by_id(doc_id)
        if document is None or document.owner_id != owner_id:
            raise DocumentNotFoundError("Document not found")

        await self.files.delete(document.storage_key)
        await self.documents.delete(document.id)
        logger.info("文档已删除", extra={"document_id": doc_id, "owner_id": owner_id})
