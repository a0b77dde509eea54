"""
面试会话服务（三问状态机）
start -> submit_answer x3 -> 综合评估并结束
"""
import asyncio
import weakref
from typing import List, Optional, Tuple

from pydantic import BaseModel

from core.config import InterviewSettings, interview_settings
from core.interfaces import DocumentStore, SessionStore
from core.state import ask, complete, ensure_accepts_answer, is_final_answer
from core.types import Document, DocumentType, InterviewSession, Match, Message
from logs import setup_logger, metrics
from nlp.exceptions import InvalidInputError, SessionNotFoundError
from nlp.prompts import INTERVIEWER_PERSONA
from services.embed_service import EmbeddingService
from services.evaluator import Evaluator, build_citations, truncate_citation
from services.rag_service import RAGService

logger = setup_logger(__name__)


class CitationView(BaseModel):
    """返回给调用方的引用（含来源类型和相关度）"""
    document_id: str
    chunk_index: int
    type: DocumentType
    text: str
    relevance: int


class AnswerOutcome(BaseModel):
    """一次回答处理的结果"""
    response: str
    score: Optional[int] = None
    is_complete: bool = False
    question_count: int
    citations: Optional[List[CitationView]] = None


class InterviewService:
    """面试会话服务"""

    def __init__(
        self,
        documents: DocumentStore,
        sessions: SessionStore,
        embeddings: EmbeddingService,
        retriever: RAGService,
        evaluator: Evaluator,
        settings: InterviewSettings = interview_settings
    ):
        self.documents = documents
        self.sessions = sessions
        self.embeddings = embeddings
        self.retriever = retriever
        self.evaluator = evaluator
        self.max_questions = settings.INTERVIEW_MAX_QUESTIONS
        self.citation_max_chars = settings.CITATION_MAX_CHARS
        # 按会话ID加锁，串行化同一会话的回答处理
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def start(self, owner_id: str) -> InterviewSession:
        """
        开始面试；已有进行中的会话时直接返回

        Raises:
            InvalidInputError: 简历或岗位描述未上传
            LLMError: 生成第一道题失败
        """
        resume, job = await asyncio.gather(
            self.documents.find_by_owner_and_type(owner_id, DocumentType.RESUME),
            self.documents.find_by_owner_and_type(owner_id, DocumentType.JOB_DESCRIPTION)
        )
        if not resume or not job:
            raise InvalidInputError(
                "Please upload both resume and job description before starting the interview"
            )

        existing = await self.sessions.find_active_by_owner(owner_id)
        if existing:
            logger.info(f"返回进行中的会话: {existing.id}")
            return existing

        first_question = await self.evaluator.first_question(job.full_text)

        session = InterviewSession(
            owner_id=owner_id,
            resume_doc_id=resume.id,
            job_description_doc_id=job.id,
            messages=[Message(role="system", content=INTERVIEWER_PERSONA)]
        )
        ask(session, first_question, self.max_questions)

        saved = await self.sessions.create_if_none_active(session)
        if saved.id != session.id:
            logger.info(f"并发创建会话，返回已有会话: {saved.id}")
        else:
            metrics.increment("sessions_started")
            logger.info("面试开始", extra={"session_id": saved.id, "owner_id": owner_id})
        return saved

    async def _load_document(
        self, owner_id: str, doc_id: str, doc_type: DocumentType
    ) -> Optional[Document]:
        """按ID读取会话文档；文档被重新上传后按类型读取最新一份"""
        doc = await self.documents.find_by_id(doc_id)
        if doc is None:
            doc = await self.documents.find_by_owner_and_type(owner_id, doc_type)
        return doc

    async def _gather_context(
        self, session: InterviewSession, message: str
    ) -> Tuple[Optional[Document], Optional[Document], List[float]]:
        # 文档读取与回答向量化互不依赖，并发执行
        resume, job, query = await asyncio.gather(
            self._load_document(session.owner_id, session.resume_doc_id, DocumentType.RESUME),
            self._load_document(session.owner_id, session.job_description_doc_id, DocumentType.JOB_DESCRIPTION),
            self.embeddings.embed(message)
        )
        if query.degraded:
            logger.info(f"回答向量使用降级算法: session={session.id}")
        return resume, job, query.vector

    def _citation_views(self, matches: List[Match]) -> List[CitationView]:
        return [
            CitationView(
                document_id=m.document_id,
                chunk_index=m.chunk_index,
                type=m.document_type,
                text=truncate_citation(m.text, self.citation_max_chars),
                relevance=round(m.similarity * 100)
            )
            for m in matches
        ]

    async def submit_answer(self, owner_id: str, session_id: str, message: str) -> AnswerOutcome:
        """
        处理候选人的回答

        前两次回答后生成下一道题；第三次回答后做综合评估并结束会话。
        状态变更在副本上完成，全部成功后只保存一次。

        Raises:
            InvalidInputError: 缺少回答或会话ID
            SessionNotFoundError: 会话不存在、不属于该用户、已结束或处理期间被重置
            LLMError: 生成失败（会话不做任何修改）
        """
        if not message or not session_id:
            raise InvalidInputError("Message and chatId are required")

        async with self._lock_for(session_id):
            stored = await self.sessions.find_by_id(session_id)
            if stored is not None and stored.owner_id != owner_id:
                stored = None
            stored = ensure_accepts_answer(stored)

            resume, job, query_vector = await self._gather_context(stored, message)
            if job is None:
                raise InvalidInputError("Job description not found, please upload it again")

            session = stored.model_copy(deep=True)
            session.messages.append(Message(role="user", content=message))
            matches = self.retriever.retrieve(query_vector, [resume, job])

            if is_final_answer(session, self.max_questions):
                evaluation, score = await self.evaluator.final_evaluation(session.messages, matches)
                complete(session, Message(
                    role="assistant",
                    content=evaluation,
                    score=score,
                    citations=build_citations(matches, self.citation_max_chars)
                ))
                outcome = AnswerOutcome(
                    response=evaluation,
                    score=score,
                    is_complete=True,
                    question_count=session.question_count,
                    citations=self._citation_views(matches)
                )
            else:
                question = await self.evaluator.next_question(job.full_text, session.messages)
                ask(session, question, self.max_questions)
                outcome = AnswerOutcome(response=question, question_count=session.question_count)

            await self.sessions.save(session)

        metrics.increment("answers_processed")
        if outcome.is_complete:
            metrics.increment("sessions_completed")
            logger.info(f"面试结束: score={outcome.score}", extra={"session_id": session_id, "owner_id": owner_id})
        return outcome

    async def history(self, owner_id: str, session_id: str) -> List[Message]:
        """
        获取会话消息（进行中或已结束）

        Raises:
            SessionNotFoundError: 会话不存在或不属于该用户
        """
        session = await self.sessions.find_by_id(session_id)
        if session is None or session.owner_id != owner_id:
            raise SessionNotFoundError("Chat not found")
        return session.messages

    async def reset(self, owner_id: str) -> int:
        """删除用户进行中的会话，返回删除数量"""
        return await self.sessions.delete_active(owner_id)
