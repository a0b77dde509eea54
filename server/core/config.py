"""
面试引擎配置（Embedding、LLM、检索与面试流程参数）
各组件在构造时接收该配置对象，不在调用时读取全局状态
"""
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field

# 获取server目录的绝对路径
SERVER_DIR = Path(__file__).parent.parent.resolve()
ENV_FILE_PATH = SERVER_DIR / ".env"


class InterviewSettings(BaseSettings):
    """面试引擎配置"""

    # Embedding配置
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_API_KEY: str = os.getenv("EMBEDDING_API_KEY", "")
    EMBEDDING_BASE_URL: str = os.getenv("EMBEDDING_BASE_URL", "https://api.openai.com/v1")
    EMBEDDING_TIMEOUT: float = float(os.getenv("EMBEDDING_TIMEOUT", "10"))  # 秒
    EMBEDDING_DIM: int = int(os.getenv("EMBEDDING_DIM", "1536"))  # 降级向量维度

    # LLM模型配置
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini-2024-07-18")
    LLM_API_KEY: str = os.getenv("LLM_API_KEY", "")
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1")
    LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "60"))  # 秒
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))

    # 各类prompt的token上限
    FIRST_QUESTION_MAX_TOKENS: int = 150
    NEXT_QUESTION_MAX_TOKENS: int = 200
    EVALUATION_MAX_TOKENS: int = 1000

    # 文档切分
    CHUNK_MAX_WORDS: int = int(os.getenv("CHUNK_MAX_WORDS", "500"))

    # RAG配置
    RAG_TOPK: int = int(os.getenv("RAG_TOPK", "2"))

    # 面试流程
    INTERVIEW_MAX_QUESTIONS: int = Field(3, ge=1, le=3)  # 存储层与评估prompt都按最多3题设计
    JD_EXCERPT_CHARS: int = 2000  # 岗位描述截取长度
    HISTORY_WINDOW: int = 4  # 生成下一题时携带的最近消息数
    CITATION_MAX_CHARS: int = 200

    # Pydantic V2 配置
    model_config = ConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# 全局面试引擎配置实例
interview_settings = InterviewSettings()
