"""
文档切分：按空白分词，每个片段最多 max_words 个词，无重叠
"""
from typing import List


def chunk_text(text: str, max_words: int = 500) -> List[str]:
    """
    将文本切分为有序片段

    Args:
        text: 原始文本
        max_words: 每个片段的最大词数

    Returns:
        片段列表（用单个空格拼接后等于原文的分词序列）
    """
    if max_words <= 0:
        raise ValueError("max_words必须为正整数")

    words = text.split()
    return [
        " ".join(words[start:start + max_words])
        for start in range(0, len(words), max_words)
    ]
