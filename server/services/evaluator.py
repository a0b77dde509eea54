"""
面试评估：构建出题/评估prompt，调用LLM，解析总分
"""
import re
from typing import List, Optional, Sequence, Tuple

from core.config import InterviewSettings, interview_settings
from core.interfaces import GenerationBackend
from core.types import Citation, Match, Message, QAPair
from logs import setup_logger
from nlp.prompts import (
    FINAL_EVALUATION,
    FIRST_QUESTION,
    NEXT_QUESTION,
    PromptManager,
    prompt_manager,
)

logger = setup_logger(__name__)

OVERALL_SCORE_PATTERN = re.compile(r"Overall Score:\s*(\d+)", re.IGNORECASE)

# 含有这些子串的assistant消息不视为问题（评估结果、欢迎语）
NON_QUESTION_MARKERS = ("Score:", "Welcome")


def extract_overall_score(text: str) -> Optional[int]:
    """
    从评估文本中解析 "Overall Score: <int>"

    Returns:
        1-10 的整数；未找到或超出范围时返回 None
    """
    match = OVERALL_SCORE_PATTERN.search(text or "")
    if not match:
        return None
    score = int(match.group(1))
    if not 1 <= score <= 10:
        logger.warning(f"总分超出范围，忽略: {score}")
        return None
    return score


def extract_qa_pairs(messages: Sequence[Message]) -> List[QAPair]:
    """
    从消息记录中提取问答对

    每条用户消息与此前最近一条未配对的问题配对，配对后清空待配对问题
    """
    pairs: List[QAPair] = []
    current_question = ""
    for msg in messages:
        if msg.role == "assistant" and not any(m in msg.content for m in NON_QUESTION_MARKERS):
            current_question = msg.content
        elif msg.role == "user" and current_question:
            pairs.append(QAPair(question=current_question, answer=msg.content))
            current_question = ""
    return pairs


def format_qa_pairs(pairs: Sequence[QAPair]) -> str:
    return "\n\n---\n\n".join(
        f"Question {i}: {qa.question}\n\nCandidate's Answer {i}: {qa.answer}"
        for i, qa in enumerate(pairs, start=1)
    )


def format_context(matches: Sequence[Match]) -> str:
    """检索片段 -> prompt上下文"""
    return "\n\n".join(f"[{m.document_type.value}]: {m.text}" for m in matches)


def format_history(messages: Sequence[Message]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


def truncate_citation(text: str, max_chars: int = 200) -> str:
    return text[:max_chars] + "..."


def build_citations(matches: Sequence[Match], max_chars: int = 200) -> List[Citation]:
    return [
        Citation(
            document_id=m.document_id,
            chunk_index=m.chunk_index,
            text=truncate_citation(m.text, max_chars)
        )
        for m in matches
    ]


class Evaluator:
    """出题与评估"""

    def __init__(
        self,
        llm: GenerationBackend,
        settings: InterviewSettings = interview_settings,
        prompts: PromptManager = prompt_manager
    ):
        self.llm = llm
        self.settings = settings
        self.prompts = prompts

    def _job_excerpt(self, job_description: str) -> str:
        return job_description[:self.settings.JD_EXCERPT_CHARS]

    async def first_question(self, job_description: str) -> str:
        """根据岗位描述生成第一道题（去除首尾空白）"""
        system_prompt, user_prompt = self.prompts.render(
            FIRST_QUESTION,
            job_description=self._job_excerpt(job_description)
        )
        reply = await self.llm.complete(
            system_prompt,
            user_prompt,
            self.settings.LLM_TEMPERATURE,
            self.settings.FIRST_QUESTION_MAX_TOKENS
        )
        return reply.strip()

    async def next_question(self, job_description: str, messages: Sequence[Message]) -> str:
        """根据岗位描述和最近几条对话生成下一道题"""
        window = self.settings.HISTORY_WINDOW
        system_prompt, user_prompt = self.prompts.render(
            NEXT_QUESTION,
            job_description=self._job_excerpt(job_description),
            history=format_history(list(messages)[-window:])
        )
        return await self.llm.complete(
            system_prompt,
            user_prompt,
            self.settings.LLM_TEMPERATURE,
            self.settings.NEXT_QUESTION_MAX_TOKENS
        )

    async def final_evaluation(
        self,
        messages: Sequence[Message],
        matches: Sequence[Match]
    ) -> Tuple[str, Optional[int]]:
        """
        对全部问答做一次综合评估

        Returns:
            (评估全文, 总分或None)
        """
        pairs = extract_qa_pairs(messages)
        if not pairs:
            logger.warning("未从消息记录中提取到问答对，评估上下文为空")

        system_prompt, user_prompt = self.prompts.render(
            FINAL_EVALUATION,
            qa_pairs=format_qa_pairs(pairs),
            context=format_context(matches)
        )
        reply = await self.llm.complete(
            system_prompt,
            user_prompt,
            self.settings.LLM_TEMPERATURE,
            self.settings.EVALUATION_MAX_TOKENS
        )

        score = extract_overall_score(reply)
        if score is None:
            logger.info("评估结果中未找到 Overall Score")
        return reply, score
