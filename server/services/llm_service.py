"""
LLM生成服务 - 使用 OpenAI SDK
失败和超时直接抛出 LLMError，不做内容替代
"""
import asyncio
from enum import Enum
from typing import Any, Dict, Optional

import httpx
from openai import AsyncOpenAI

from core.config import InterviewSettings, interview_settings
from logs import setup_logger, metrics, timed
from nlp.exceptions import GenerationTimeoutError, LLMError

logger = setup_logger(__name__)


class ErrorType(Enum):
    """错误类型枚举"""
    TEMP_UNSUPPORTED = "temp_unsupported"
    MAX_TOKENS_UNSUPPORTED = "max_tokens_unsupported"
    UNKNOWN = "unknown"


class LLMService:
    """LLM客户端（非流式）"""

    def __init__(self, settings: InterviewSettings = interview_settings):
        self.api_key = settings.LLM_API_KEY
        self.base_url = settings.LLM_BASE_URL
        self.model = settings.LLM_MODEL
        self.timeout = settings.LLM_TIMEOUT

        # 按模型预先决定参数形式
        model_lower = self.model.lower()
        self._use_max_completion_tokens = any(
            p in model_lower for p in ("gpt-5", "o1", "o3")
        )
        self._use_default_temp = any(
            p in model_lower for p in ("gpt-5", "o1", "o3")
        )

        # httpx.AsyncClient 需要在事件循环中创建，延迟初始化
        self._http_client: Optional[httpx.AsyncClient] = None
        self.async_client: Optional[AsyncOpenAI] = None
        self._client_lock: Optional[asyncio.Lock] = None

        if not self.api_key:
            logger.warning("LLM_API_KEY未设置，LLM功能将不可用")

    def _classify_error(self, error: Exception) -> ErrorType:
        """错误分类"""
        error_msg = str(error).lower()

        if "temperature" in error_msg and ("only the default" in error_msg or
                                           "unsupported value" in error_msg):
            return ErrorType.TEMP_UNSUPPORTED

        if "max_tokens" in error_msg and ("max_completion_tokens" in error_msg or
                                          "not supported" in error_msg):
            return ErrorType.MAX_TOKENS_UNSUPPORTED

        return ErrorType.UNKNOWN

    def _build_request_params(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int
    ) -> Dict[str, Any]:
        """构建请求参数"""
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
        }

        if self._use_max_completion_tokens:
            params["max_completion_tokens"] = max_tokens
        else:
            params["max_tokens"] = max_tokens

        if not self._use_default_temp:
            params["temperature"] = temperature

        return params

    async def _ensure_async_client(self):
        """确保 async_client 已初始化（延迟初始化）"""
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()

        if self.async_client is None:
            async with self._client_lock:
                if self.async_client is None:
                    limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
                    self._http_client = httpx.AsyncClient(
                        limits=limits,
                        timeout=httpx.Timeout(self.timeout, connect=10.0)
                    )
                    self.async_client = AsyncOpenAI(
                        api_key=self.api_key,
                        base_url=self.base_url,
                        http_client=self._http_client,
                        max_retries=0  # 我们自己处理重试
                    )

    async def _create(self, params: Dict[str, Any]) -> str:
        """调用一次，参数不兼容时调整后重试一次"""
        try:
            response = await self.async_client.chat.completions.create(**params)
        except Exception as e:
            error_type = self._classify_error(e)
            if error_type == ErrorType.TEMP_UNSUPPORTED and "temperature" in params:
                logger.debug("移除 temperature 参数，使用默认值")
                params.pop("temperature")
            elif error_type == ErrorType.MAX_TOKENS_UNSUPPORTED and "max_tokens" in params:
                logger.debug("切换到 max_completion_tokens")
                params["max_completion_tokens"] = params.pop("max_tokens")
            else:
                raise
            response = await self.async_client.chat.completions.create(**params)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("未获取到响应内容")
        return content

    @timed("llm_requests")
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        """
        生成文本（返回完整结果）

        Args:
            system_prompt: system消息
            user_prompt: user消息
            temperature: 温度参数
            max_tokens: 最大token数

        Returns:
            生成的文本

        Raises:
            GenerationTimeoutError: 超时
            LLMError: 未配置密钥、API错误或空响应
        """
        if not self.api_key:
            raise LLMError("LLM_API_KEY未设置")

        await self._ensure_async_client()
        params = self._build_request_params(system_prompt, user_prompt, temperature, max_tokens)

        try:
            return await asyncio.wait_for(self._create(params), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            metrics.increment("llm_errors")
            logger.error(f"LLM调用超时（{self.timeout}s）")
            raise GenerationTimeoutError(f"LLM调用超时（{self.timeout}s）", cause=e)
        except LLMError:
            metrics.increment("llm_errors")
            logger.error("LLM返回空内容")
            raise
        except Exception as e:
            metrics.increment("llm_errors")
            logger.error(f"LLM API调用失败: {e}")
            raise LLMError(f"LLM API调用失败: {e}", cause=e)

    async def close(self):
        """关闭 HTTP 客户端连接"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
            self.async_client = None


# 全局LLM实例
llm_service = LLMService()
