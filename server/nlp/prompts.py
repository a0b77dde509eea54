"""
Prompt模板（LangChain ChatPromptTemplate）
模板文本需与线上行为保持逐字一致
"""
from typing import Dict, Tuple

from langchain_core.prompts import ChatPromptTemplate

from logs import setup_logger
from nlp.exceptions import PromptError

logger = setup_logger(__name__)

FIRST_QUESTION = "first_question"
NEXT_QUESTION = "next_question"
FINAL_EVALUATION = "final_evaluation"

# 会话开头写入的 system 消息
INTERVIEWER_PERSONA = (
    "You are conducting a job interview based on the provided job description. "
    "Ask questions one at a time and provide feedback after each answer."
)

FIRST_QUESTION_SYSTEM = (
    "You are an interviewer. You MUST ask only ONE question at a time. "
    "Never list multiple questions."
)

FIRST_QUESTION_USER = """You are starting an interview. Based on the job description below, ask ONLY the first question.

Job Description:
{job_description}

IMPORTANT RULES:
- Ask ONLY ONE question (the first question)
- DO NOT include numbers like "1.", "2.", "3."
- DO NOT list multiple questions
- DO NOT say "Let's begin with" or similar phrases
- Just ask a single, direct question

Your response should be ONLY the question itself, nothing else."""

NEXT_QUESTION_SYSTEM = (
    "You are an experienced technical interviewer. "
    "Ask questions one at a time without providing feedback yet."
)

NEXT_QUESTION_USER = """Based on the following job description and the candidate's previous responses, generate ONE new relevant interview question.

Job Description:
{job_description}

Previous conversation:
{history}

Generate ONE specific, relevant interview question. DO NOT provide feedback or scores. Just ask the next question."""

FINAL_EVALUATION_SYSTEM = (
    "You are an experienced technical interviewer providing comprehensive "
    "feedback on a complete interview."
)

FINAL_EVALUATION_USER = """You are evaluating a complete 3-question interview. Here are all the questions and answers:

{qa_pairs}

Relevant context from resume and job description:
{context}

Please provide a comprehensive evaluation:

1. For each answer, provide:
   - Score (1-10)
   - Specific feedback (2-3 sentences)

2. Overall interview summary with:
   - Overall performance score (1-10)
   - Key strengths
   - Areas for improvement
   - Final recommendation

Format your response EXACTLY as:
Answer 1 Score: [1-10]
Answer 1 Feedback: [Your feedback]

Answer 2 Score: [1-10]
Answer 2 Feedback: [Your feedback]

Answer 3 Score: [1-10]
Answer 3 Feedback: [Your feedback]

Overall Score: [1-10]
Summary: [Your comprehensive summary with strengths, areas for improvement, and recommendation]"""


class PromptManager:
    """Prompt模板管理器"""

    def __init__(self):
        self._prompts: Dict[str, ChatPromptTemplate] = {}

    def register(self, name: str, system: str, user: str):
        """注册一组 system/user 模板"""
        self._prompts[name] = ChatPromptTemplate.from_messages([
            ("system", system),
            ("human", user),
        ])
        logger.debug(f"注册Prompt模板: {name}")

    def get_prompt(self, name: str) -> ChatPromptTemplate:
        """
        获取prompt模板

        Raises:
            PromptError: 模板不存在时抛出
        """
        template = self._prompts.get(name)
        if not template:
            raise PromptError(f"Prompt模板 '{name}' 不存在")
        return template

    def render(self, name: str, **variables: str) -> Tuple[str, str]:
        """
        渲染模板

        Returns:
            (system_prompt, user_prompt)
        """
        system_msg, user_msg = self.get_prompt(name).format_messages(**variables)
        return system_msg.content, user_msg.content


# 全局prompt管理器
prompt_manager = PromptManager()
prompt_manager.register(FIRST_QUESTION, FIRST_QUESTION_SYSTEM, FIRST_QUESTION_USER)
prompt_manager.register(NEXT_QUESTION, NEXT_QUESTION_SYSTEM, NEXT_QUESTION_USER)
prompt_manager.register(FINAL_EVALUATION, FINAL_EVALUATION_SYSTEM, FINAL_EVALUATION_USER)
