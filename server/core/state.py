"""
面试会话状态机
NOT_STARTED -> AWAITING_ANSWER(n), n ∈ {1,2,3} -> COMPLETED
"""
from enum import Enum
from typing import Optional

from core.types import InterviewSession, Message
from nlp.exceptions import SessionNotFoundError

MAX_QUESTIONS = 3


class InterviewPhase(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_ANSWER = "awaiting_answer"
    COMPLETED = "completed"


def phase_of(session: Optional[InterviewSession]) -> InterviewPhase:
    """根据会话字段推导当前阶段"""
    if session is None or session.question_count == 0:
        return InterviewPhase.NOT_STARTED
    if not session.is_active:
        return InterviewPhase.COMPLETED
    return InterviewPhase.AWAITING_ANSWER


def ensure_accepts_answer(session: Optional[InterviewSession]) -> InterviewSession:
    """
    校验会话可以接收回答

    Raises:
        SessionNotFoundError: 会话不存在、已结束或尚未出题
    """
    if phase_of(session) != InterviewPhase.AWAITING_ANSWER:
        raise SessionNotFoundError("Chat session not found")
    return session


def is_final_answer(session: InterviewSession, max_questions: int = MAX_QUESTIONS) -> bool:
    """当前回答是否对应最后一道题"""
    return session.question_count >= max_questions


def ask(session: InterviewSession, question: str, max_questions: int = MAX_QUESTIONS) -> None:
    """追加下一道题，question_count 加 1"""
    if not session.is_active or session.question_count >= max_questions:
        raise ValueError("面试已达到题目上限，不能继续出题")
    session.messages.append(Message(role="assistant", content=question))
    session.question_count += 1


def complete(session: InterviewSession, evaluation: Message) -> None:
    """追加最终评估并结束会话（active 只会从 True 变为 False 一次）"""
    if not session.is_active:
        raise ValueError("面试已结束")
    session.messages.append(evaluation)
    session.is_active = False
