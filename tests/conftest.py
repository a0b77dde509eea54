import asyncio
from typing import Callable, List, Optional, Union

import pytest

from core.config import InterviewSettings
from core.types import Chunk, ChunkMetadata, Document, DocumentType
from logs import metrics
from services.document_service import DocumentService
from services.embed_service import EmbeddingService
from services.evaluator import Evaluator
from services.interview_service import InterviewService
from services.rag_service import RAGService
from storage.file_store import LocalFileStore
from storage.memory import InMemoryDocumentStore, InMemorySessionStore

VOCAB = ["python", "sql", "team", "cloud"]


def keyword_vector(text: str) -> List[float]:
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCAB]


class KeywordEmbeddingBackend:
    """把关键词计数当作向量，便于构造可预测的相似度"""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.calls: List[List[str]] = []

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("embedding backend down")
        return [keyword_vector(t) for t in texts]


EVALUATION_REPLY = """Answer 1 Score: 6
Answer 1 Feedback: Solid start.

Answer 2 Score: 7
Answer 2 Feedback: Good detail.

Answer 3 Score: 8
Answer 3 Feedback: Strong finish.

Overall Score: 7
Summary: Good candidate."""


class FakeLLM:
    """按 system prompt 区分出题和评估的假LLM"""

    def __init__(
        self,
        evaluation: str = EVALUATION_REPLY,
        fail_on: Optional[Callable[[str, str], bool]] = None,
        delay: float = 0.0
    ):
        self.evaluation = evaluation
        self.fail_on = fail_on
        self.delay = delay
        self.calls: List[dict] = []
        self.questions_asked = 0

    async def complete(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        self.calls.append({
            "system": system_prompt,
            "user": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on and self.fail_on(system_prompt, user_prompt):
            from nlp.exceptions import LLMError
            raise LLMError("upstream unavailable")
        if "complete 3-question interview" in user_prompt:
            return self.evaluation
        self.questions_asked += 1
        return f"  Question {self.questions_asked}: tell me about your python work?  "


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
def interview_config() -> InterviewSettings:
    return InterviewSettings(EMBEDDING_API_KEY="", LLM_API_KEY="", EMBEDDING_TIMEOUT=1.0)


@pytest.fixture
def embedding_backend() -> KeywordEmbeddingBackend:
    return KeywordEmbeddingBackend()


@pytest.fixture
def embeddings(interview_config, embedding_backend) -> EmbeddingService:
    return EmbeddingService(interview_config, backend=embedding_backend)


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def document_service(document_store, embeddings, interview_config, tmp_path) -> DocumentService:
    return DocumentService(document_store, LocalFileStore(str(tmp_path)), embeddings, interview_config)


@pytest.fixture
def interview_service(document_store, session_store, embeddings, llm, interview_config) -> InterviewService:
    return InterviewService(
        document_store,
        session_store,
        embeddings,
        RAGService(interview_config),
        Evaluator(llm, interview_config),
        interview_config,
    )


def make_document(
    doc_type: Union[DocumentType, str],
    chunk_texts: List[str],
    owner_id: str = "u1",
    vectors: Optional[List[List[float]]] = None,
    full_text: Optional[str] = None,
) -> Document:
    vectors = vectors or [keyword_vector(t) for t in chunk_texts]
    return Document(
        owner_id=owner_id,
        type=DocumentType(doc_type),
        filename=f"{DocumentType(doc_type).value}.pdf",
        full_text=full_text or " ".join(chunk_texts),
        chunks=[
            Chunk(text=t, embedding=v, metadata=ChunkMetadata(chunk_index=i, page_number=i // 3 + 1))
            for i, (t, v) in enumerate(zip(chunk_texts, vectors))
        ],
    )


@pytest.fixture
async def uploaded(document_store):
    """u1 已上传简历和岗位描述"""
    resume = make_document(DocumentType.RESUME, [
        "Built python services and sql pipelines " + "x" * 250,
        "Led a team of five engineers",
    ])
    job = make_document(DocumentType.JOB_DESCRIPTION, [
        "We need python and cloud experience",
        "Strong sql skills required",
    ])
    await document_store.save(resume)
    await document_store.save(job)
    return resume, job
