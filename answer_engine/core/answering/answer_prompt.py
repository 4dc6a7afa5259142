"""
Grounded answer prompt.

Builds the chat messages for an answer: a system prompt that numbers the
retrieved excerpts and prescribes the citation markers, recent
conversation history, and the question. A separate instruction is used
when retrieval found nothing so the model does not invent citations.

Dependencies: langchain_core.prompts
System role: Prompt template for answer generation
"""

import logging

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from answer_engine.core.token_count import estimate_tokens, tokens_to_chars
from answer_engine.models.retrieval import MergedResults
from answer_engine.models.streaming import HistoryMessage

logger = logging.getLogger(__name__)

GROUNDED_SYSTEM_PROMPT = """You are a helpful study assistant that answers questions using the provided sources.

## Instructions
1. Base your answer on the document excerpts and web results below
2. If the sources do not contain enough information, say so clearly
3. Cite every claim that comes from a source:
   - Document excerpts: [Document 1], [Document 2], etc.
   - Web results: [Web Source 1](url), [Web Source 2](url), etc.
4. Only cite numbers that appear in the sources below
5. Prioritize document excerpts when they directly answer the question

{context}"""

NO_CONTEXT_SYSTEM_PROMPT = """You are a helpful study assistant.

No document excerpts or web results were found for this question.
Answer from general knowledge, state plainly that the answer is not grounded
in the user's documents or the web, and do not include any citation markers."""

GROUNDED_PROMPT = ChatPromptTemplate.from_messages([
    ("system", GROUNDED_SYSTEM_PROMPT),
    MessagesPlaceholder("history"),
    ("human", "{question}"),
])

NO_CONTEXT_PROMPT = ChatPromptTemplate.from_messages([
    ("system", NO_CONTEXT_SYSTEM_PROMPT),
    MessagesPlaceholder("history"),
    ("human", "{question}"),
])

FOLLOW_UP_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "Suggest short follow-up questions a student might ask next. "
               "Return at most {max_items} questions, one per line, as a bulleted list. No other text."),
    ("human", "Question: {question}\n\nAnswer: {answer}"),
])


def format_context(results: MergedResults, max_context_tokens: int = 6000) -> str:
    """
    Render numbered sources within a token budget.

    Documents are numbered ``Document N`` and web results ``Web Source N``
    in group order; the numbering matches what the citation extractor
    resolves. Excerpts that do not fit the remaining budget are truncated,
    and sources after the budget is spent are omitted.

    Args:
        results: Retrieval outcome
        max_context_tokens: Estimated token budget for all excerpts

    Returns:
        str: Context block for the system prompt
    """
    remaining = tokens_to_chars(max_context_tokens)
    sections = []

    doc_lines = []
    for n, result in enumerate(results.documents, start=1):
        if remaining <= 0:
            break
        excerpt = result.excerpt[:remaining]
        remaining -= len(excerpt)
        doc_lines.append(f"[Document {n}] (document {result.document_id}, chunk {result.chunk_index})\n{excerpt}")
    if doc_lines:
        sections.append("## Document excerpts\n" + "\n\n".join(doc_lines))

    web_lines = []
    for n, result in enumerate(results.web, start=1):
        if remaining <= 0:
            break
        excerpt = result.excerpt[:remaining]
        remaining -= len(excerpt)
        web_lines.append(f"[Web Source {n}] {result.title or 'Untitled'} ({result.url})\n{excerpt}")
    if web_lines:
        sections.append("## Web results\n" + "\n\n".join(web_lines))

    context = "\n\n".join(sections)
    logger.debug(
        f"{__name__}:format_context - Context built",
        extra={"documents": len(doc_lines), "web": len(web_lines), "approx_tokens": estimate_tokens(context)},
    )
    return context


def history_messages(history: list[HistoryMessage] | None, limit: int = 10) -> list[BaseMessage]:
    """Last ``limit`` history turns as LangChain messages."""
    if not history or limit <= 0:
        return []
    messages: list[BaseMessage] = []
    for item in history[-limit:]:
        if item.role == "assistant":
            messages.append(AIMessage(content=item.content))
        else:
            messages.append(HumanMessage(content=item.content))
    return messages


def build_answer_messages(
    question: str,
    results: MergedResults,
    history: list[HistoryMessage] | None = None,
    max_history_messages: int = 10,
    max_context_tokens: int = 6000,
) -> list[BaseMessage]:
    """
    Build the messages for one answer.

    Args:
        question: User question
        results: Retrieval outcome
        history: Prior conversation turns
        max_history_messages: History turns kept
        max_context_tokens: Token budget for source excerpts

    Returns:
        list[BaseMessage]: System, history and question messages
    """
    past = history_messages(history, max_history_messages)
    if results.no_context:
        return NO_CONTEXT_PROMPT.format_messages(history=past, question=question)
    return GROUNDED_PROMPT.format_messages(
        context=format_context(results, max_context_tokens),
        history=past,
        question=question,
    )
