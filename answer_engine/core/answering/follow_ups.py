"""
Follow-up question suggestions.

Best-effort secondary generation after a completed answer. Any failure
yields an empty list.

Dependencies: answer_engine.boundary.llm
System role: Optional enrichment of the done event
"""

import logging
import re

from answer_engine.boundary.llm.base import LLMProvider
from answer_engine.core.answering.answer_prompt import FOLLOW_UP_PROMPT

logger = logging.getLogger(__name__)

LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def parse_follow_ups(text: str, max_items: int = 4) -> list[str]:
    """
    Parse bulleted or numbered lines into questions.

    Args:
        text: Raw model output
        max_items: Maximum questions kept

    Returns:
        list[str]: Cleaned, de-duplicated questions
    """
    questions: list[str] = []
    for line in (text or "").splitlines():
        if not LIST_MARKER.match(line):
            continue
        question = LIST_MARKER.sub("", line).strip().strip('"').strip()
        if question and question not in questions:
            questions.append(question)
        if len(questions) >= max_items:
            break
    return questions


async def generate_follow_ups(
    provider: LLMProvider,
    question: str,
    answer: str,
    max_items: int = 4,
) -> list[str]:
    """
    Suggest follow-up questions for a completed answer.

    Args:
        provider: Completion provider
        question: Original question
        answer: Final answer text
        max_items: Maximum questions returned

    Returns:
        list[str]: Suggestions, empty on any failure
    """
    if max_items <= 0 or not answer.strip():
        return []
    messages = FOLLOW_UP_PROMPT.format_messages(max_items=max_items, question=question, answer=answer)
    try:
        raw = await provider.complete(messages)
    except Exception as e:
        logger.warning(
            f"{__name__}:generate_follow_ups - Follow-up generation failed",
            extra={"error_type": type(e).__name__, "error_msg": str(e)},
        )
        return []
    return parse_follow_ups(raw, max_items)
