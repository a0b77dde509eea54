"""
本地文件存储（上传的原始文件）
"""
import asyncio
from pathlib import Path

from config import settings
from logs import setup_logger

logger = setup_logger(__name__)


class LocalFileStore:
    """把上传文件写到本地目录，返回 /uploads/<key> 形式的地址"""

    def __init__(self, root: str = settings.UPLOAD_DIR):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"非法的存储key: {key}")
        return path

    async def put(self, data: bytes, key: str) -> str:
        path = self._path(key)

        def _write():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug(f"文件已保存: {path}")
        return f"/uploads/{key}"

    async def delete(self, key: str) -> None:
        """删除文件（文件不存在时忽略）"""
        if not key:
            return
        path = self._path(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)
