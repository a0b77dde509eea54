"""
统一配置模块
"""
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import ConfigDict

# 获取server目录的绝对路径
SERVER_DIR = Path(__file__).parent.resolve()
ENV_FILE_PATH = SERVER_DIR / ".env"


class Settings(BaseSettings):
    """应用配置"""

    # 应用基础配置
    APP_NAME: str = "模拟面试助手"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # 服务器配置
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # PostgreSQL配置
    PG_HOST: str = os.getenv("PG_HOST", "localhost")
    PG_PORT: int = int(os.getenv("PG_PORT", "5432"))
    PG_DB: str = os.getenv("PG_DB", "interview")
    PG_USER: str = os.getenv("PG_USER", "postgres")
    PG_PASSWORD: str = os.getenv("PG_PASSWORD", "")
    PG_ENABLED: bool = os.getenv("PG_ENABLED", "false").lower() == "true"  # 未启用时使用内存存储

    # 上传文件配置
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", str(SERVER_DIR / "uploads"))
    UPLOAD_MAX_BYTES: int = 2 * 1024 * 1024  # 2MB

    # 日志配置
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or text

    # Pydantic V2 配置
    model_config = ConfigDict(
        env_file=str(ENV_FILE_PATH),  # 使用绝对路径，确保能找到.env文件
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# 全局配置实例
settings = Settings()
