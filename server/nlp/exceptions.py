"""
面试引擎统一异常体系
"""
from typing import Optional


class InterviewError(Exception):
    """面试引擎相关异常的基类"""
    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidInputError(InterviewError):
    """请求参数错误（客户端错误）"""
    pass


class SessionNotFoundError(InterviewError):
    """会话不存在或已结束"""
    pass


class DocumentNotFoundError(InterviewError):
    """文档不存在"""
    pass


class LLMError(InterviewError):
    """LLM调用失败异常"""
    pass


class GenerationTimeoutError(LLMError):
    """LLM调用超时"""
    pass


class PromptError(InterviewError):
    """Prompt模板错误异常"""
    pass
