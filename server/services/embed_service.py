"""
Embedding服务
远程模型失败时使用确定性降级向量，调用方通过 EmbeddingResult.degraded 感知降级
"""
import asyncio
from typing import List, Optional

import aiohttp
import numpy as np

from core.config import InterviewSettings, interview_settings
from core.interfaces import EmbeddingBackend
from core.types import EmbeddingResult
from logs import setup_logger, metrics

logger = setup_logger(__name__)


class EmbeddingAPIError(Exception):
    """Embedding API返回错误"""
    pass


class OpenAIEmbeddingBackend:
    """OpenAI兼容的 /embeddings 接口"""

    def __init__(self, settings: InterviewSettings = interview_settings):
        self.api_key = settings.EMBEDDING_API_KEY
        self.base_url = settings.EMBEDDING_BASE_URL
        self.model = settings.EMBEDDING_MODEL

        if not self.api_key:
            logger.warning("EMBEDDING_API_KEY未设置，将始终使用降级向量")

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        批量请求embedding

        Raises:
            EmbeddingAPIError: 未配置密钥、HTTP错误或返回数量不匹配
        """
        if not self.api_key:
            raise EmbeddingAPIError("EMBEDDING_API_KEY未设置")

        url = f"{self.base_url.rstrip('/')}/embeddings"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": self.model,
            "input": texts,
            "encoding_format": "float"
        }

        async with aiohttp.ClientSession() as session:
            async with session.post(url, headers=headers, json=payload) as resp:
                if resp.status != 200:
                    error_text = await resp.text()
                    raise EmbeddingAPIError(f"Embedding API错误: {resp.status} - {error_text}")

                data = await resp.json()

        items = sorted(data.get("data", []), key=lambda item: item.get("index", 0))
        if len(items) != len(texts):
            raise EmbeddingAPIError(f"Embedding API返回数量不匹配: {len(items)} != {len(texts)}")
        return [item["embedding"] for item in items]


def fallback_embedding(text: str, dim: int = 1536) -> np.ndarray:
    """
    确定性降级向量

    第 i 个字符（UTF-16码元）的码值/1000 累加到第 i mod dim 维，再做L2归一化；
    空文本返回零向量。相同文本总是得到逐位相同的向量。
    """
    vector = np.zeros(dim, dtype=np.float64)
    if text:
        codes = np.frombuffer(text.encode("utf-16-le"), dtype="<u2").astype(np.float64)
        # np.add.at 按顺序累加，保证与逐字符累加结果一致
        np.add.at(vector, np.arange(codes.size) % dim, codes / 1000)

    norm = np.sqrt(np.dot(vector, vector))
    if norm > 0:
        vector = vector / norm
    return vector


class EmbeddingService:
    """Embedding生成服务"""

    def __init__(
        self,
        settings: InterviewSettings = interview_settings,
        backend: Optional[EmbeddingBackend] = None
    ):
        self.timeout = settings.EMBEDDING_TIMEOUT
        self.dim = settings.EMBEDDING_DIM
        self.backend = backend or OpenAIEmbeddingBackend(settings)

    async def embed(self, text: str) -> EmbeddingResult:
        """
        生成单个文本的embedding

        Args:
            text: 输入文本

        Returns:
            EmbeddingResult（远程失败时为降级向量）
        """
        results = await self.embed_batch([text])
        return results[0]

    async def embed_batch(self, texts: List[str]) -> List[EmbeddingResult]:
        """
        批量生成embedding，与逐条调用 embed 语义一致

        Args:
            texts: 文本列表

        Returns:
            与输入顺序一致的 EmbeddingResult 列表
        """
        if not texts:
            return []

        metrics.increment("embedding_requests")
        try:
            vectors = await asyncio.wait_for(self.backend.embed_texts(list(texts)), timeout=self.timeout)
            return [EmbeddingResult(vector=list(map(float, v))) for v in vectors]
        except asyncio.TimeoutError:
            error = f"Embedding API调用超时（{self.timeout}s）"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        # 整批降级，不混用远程向量和降级向量
        metrics.increment("embedding_fallbacks")
        logger.warning(f"Embedding生成失败，使用降级向量（{len(texts)}条）: {error}")
        return [
            EmbeddingResult(vector=fallback_embedding(t, self.dim).tolist(), degraded=True, error=error)
            for t in texts
        ]


# 全局实例
embedding_service = EmbeddingService()
