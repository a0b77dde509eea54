"""
RAG检索服务
对会话的简历与岗位描述片段做余弦相似度检索，返回 top-K
"""
from typing import List, Optional, Sequence

import numpy as np

from core.config import InterviewSettings, interview_settings
from core.types import Document, Match
from logs import setup_logger

logger = setup_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    余弦相似度

    任一向量模长为0时返回0

    Raises:
        ValueError: 维度不一致
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"向量维度不一致: {va.shape[0]} != {vb.shape[0]}")

    norm_a = np.sqrt(np.dot(va, va))
    norm_b = np.sqrt(np.dot(vb, vb))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def find_top_k(
    query_vector: Sequence[float],
    documents: Sequence[Optional[Document]],
    k: int
) -> List[Match]:
    """
    在所有文档片段中检索与查询向量最相似的 k 个片段

    Args:
        query_vector: 查询向量
        documents: 文档列表（None 会被忽略）
        k: 返回数量

    Returns:
        按相似度降序的命中列表；相似度相同时保持（文档顺序，片段序号）的原始顺序
    """
    matches: List[Match] = []
    for doc in documents:
        if doc is None:
            continue
        for i, chunk in enumerate(doc.chunks):
            try:
                similarity = cosine_similarity(query_vector, chunk.embedding)
            except ValueError as e:
                logger.warning(f"跳过维度不匹配的片段 doc={doc.id} chunk={i}: {e}")
                continue
            matches.append(Match(
                document_id=doc.id,
                document_type=doc.type,
                chunk_index=i,
                text=chunk.text,
                similarity=similarity,
                metadata=chunk.metadata.model_dump()
            ))

    # sorted 是稳定排序，reverse=True 不会打乱相同相似度的先后顺序
    matches = sorted(matches, key=lambda m: m.similarity, reverse=True)
    return matches[:max(k, 0)]


class RAGService:
    """RAG检索服务"""

    def __init__(self, settings: InterviewSettings = interview_settings):
        self.top_k = settings.RAG_TOPK

    def retrieve(
        self,
        query_vector: Sequence[float],
        documents: Sequence[Optional[Document]],
        k: Optional[int] = None
    ) -> List[Match]:
        """执行检索（默认 top_k 取自配置）"""
        top_k = self.top_k if k is None else k
        matches = find_top_k(query_vector, documents, top_k)
        if matches:
            logger.debug(f"检索到 {len(matches)} 个片段，最高相似度 {matches[0].similarity:.3f}")
        else:
            logger.info("文档中没有可检索的片段")
        return matches


# 全局实例
rag_service = RAGService()
