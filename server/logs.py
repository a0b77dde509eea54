"""
日志与指标模块

日志按 LOG_FORMAT 输出 JSON 或纯文本；指标只在进程内累计，
通过 /metrics 端点查看
"""
import asyncio
import json
import logging
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

from config import settings

# 通过 logger.xxx(..., extra={...}) 传入时会写进JSON日志
CONTEXT_FIELDS = ("owner_id", "session_id", "document_id", "doc_type")

COUNTERS = (
    "embedding_requests",
    "embedding_fallbacks",
    "llm_requests",
    "llm_errors",
    "documents_ingested",
    "sessions_started",
    "sessions_completed",
    "answers_processed",
)


class StructuredFormatter(logging.Formatter):
    """JSON日志格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class MetricsCollector:
    """进程内计数器和耗时统计"""

    def __init__(self):
        self.counters: Dict[str, int] = dict.fromkeys(COUNTERS, 0)
        self.timings: Dict[str, Dict[str, float]] = {}

    def increment(self, metric: str, value: int = 1):
        self.counters[metric] = self.counters.get(metric, 0) + value

    def observe(self, metric: str, seconds: float):
        """记录一次耗时"""
        timing = self.timings.setdefault(metric, {"count": 0, "total": 0.0, "max": 0.0})
        timing["count"] += 1
        timing["total"] += seconds
        timing["max"] = max(timing["max"], seconds)

    def get(self, metric: str) -> int:
        return self.counters.get(metric, 0)

    def get_all(self) -> Dict[str, Any]:
        """
        导出全部指标

        Returns:
            计数器平铺在顶层，耗时统计放在 timings 下（单位秒）
        """
        snapshot: Dict[str, Any] = dict(self.counters)
        snapshot["timings"] = {
            name: {
                "count": t["count"],
                "avg": round(t["total"] / t["count"], 4) if t["count"] else 0.0,
                "max": round(t["max"], 4),
            }
            for name, t in self.timings.items()
        }
        return snapshot

    def reset(self):
        self.counters = dict.fromkeys(COUNTERS, 0)
        self.timings = {}


# 全局指标收集器
metrics = MetricsCollector()


def setup_logger(name: str = "mock_interview", level: Optional[str] = None) -> logging.Logger:
    """
    获取日志记录器，首次获取时挂上控制台处理器

    Args:
        name: 日志记录器名称
        level: 日志级别（默认读取 LOG_LEVEL）

    Returns:
        配置好的日志记录器
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logger.level)
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    return logger


def timed(metric: str):
    """
    装饰异步函数：每次调用计数一次并记录耗时

    失败同样计入耗时，错误计数由调用方自己负责
    """
    def decorator(func):
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"timed 只能装饰异步函数: {func.__name__}")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            metrics.increment(metric)
            start = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                metrics.observe(metric, elapsed)
                logging.getLogger(func.__module__).debug(f"{func.__name__} 耗时 {elapsed:.3f}s")

        return wrapper

    return decorator
