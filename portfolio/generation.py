"""Generation — bridges HTTP requests to streaming Anthropic completions.

Builds the pitch and assistant prompts from the portfolio profile, streams
the model output, and yields one StreamFragment per text delta.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from portfolio.profile import portfolio_context
from portfolio.schemas import StreamFragment

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

    from portfolio.config import LLMConfig
    from portfolio.profile import Profile
    from portfolio.schemas import ChatTurn

logger = logging.getLogger(__name__)

AI_SERVICE_ERROR = "An error occurred while communicating with the AI service."

PITCH_SYSTEM_PROMPT = """You are an expert AI and Data Science consultant acting as a "Project Pitch Generator" for a professional's portfolio website.
Your task is to analyze a business problem submitted by a potential client or recruiter and generate a concise, compelling project proposal.

**CRITICAL INSTRUCTIONS:**
1. **Analyze the User's Problem:** Understand the core business need described by the user.
2. **Propose a Concrete Solution:** Devise a specific, actionable AI, Data Science, or Automation solution. Be creative but realistic.
3. **Leverage the Portfolio:** Connect your proposed solution directly to the professional's skills, technologies, and past project experience. Reference one or more specific projects by name.
4. **Recommend Technologies:** List a relevant tech stack for the solution that aligns with the professional's expertise.
5. **Maintain a Professional Tone:** Write in a clear, confident, and consultative voice.

The response must follow this Markdown structure and must not be wrapped in a code block:
# A catchy and relevant title for the project
## 1. Business Problem Analysis
## 2. Proposed Solution
### Key Features:
(a bulleted list, one "- " line per feature)
## 3. Recommended Technologies
## 4. Expected Impact & ROI

**PORTFOLIO CONTEXT:**
{context}"""

ASSISTANT_SYSTEM_PROMPT = """You are the Q&A assistant on {name}'s portfolio website.
Answer questions about their projects, skills, experience, and education using only the portfolio data below.
If the data does not cover the question, say so briefly. Keep answers short; use "- " bullets for lists and **bold** for emphasis.

{context}"""


# ---------------------------------------------------------------------------
# LLM factory
# ---------------------------------------------------------------------------


def get_llm(config: LLMConfig) -> ChatAnthropic:
    """Create an Anthropic chat model from the configured settings."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY environment variable is not set")
    return ChatAnthropic(
        model=config.model,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
        api_key=api_key,
    )


def _extract_content(content) -> str:
    """Normalize chunk content — Anthropic can stream a list of blocks or a string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Only text blocks carry visible output: [{"type": "text", "text": "..."}]
        parts = []
        for block in content:
            if isinstance(block, dict):
                if block.get("type", "text") == "text":
                    parts.append(block.get("text", ""))
            elif isinstance(block, str):
                parts.append(block)
        return "".join(parts)
    return str(content)


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------


def build_pitch_messages(profile: Profile | None, problem: str) -> list[BaseMessage]:
    system = PITCH_SYSTEM_PROMPT.format(context=portfolio_context(profile))
    return [
        SystemMessage(content=system),
        HumanMessage(content=f'Here is the business problem: "{problem}"'),
    ]


def build_assistant_messages(
    profile: Profile | None,
    question: str,
    history: list[ChatTurn],
    max_turns: int,
) -> list[BaseMessage]:
    """System prompt, the last ``max_turns`` history turns, then the question."""
    name = profile.name if profile else "the professional"
    messages: list[BaseMessage] = [
        SystemMessage(
            content=ASSISTANT_SYSTEM_PROMPT.format(
                name=name, context=portfolio_context(profile)
            )
        )
    ]
    recent = history[-max_turns:] if max_turns > 0 else []
    for turn in recent:
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.content))
        else:
            messages.append(AIMessage(content=turn.content))
    messages.append(HumanMessage(content=question))
    return messages


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


async def stream_completion(
    llm: BaseChatModel, messages: list[BaseMessage]
) -> AsyncGenerator[StreamFragment, None]:
    """Stream the model's reply as fragments.

    A failure mid-stream is logged and reported as a final fragment with
    ``error`` set; the HTTP status is already 200 at that point.
    """
    emitted = 0
    try:
        async for chunk in llm.astream(messages):
            content = _extract_content(chunk.content)
            if not content:
                continue
            emitted += 1
            yield StreamFragment(content=content)
    except Exception as e:
        logger.error(f"LLM streaming error after {emitted} fragments: {e}", exc_info=True)
        yield StreamFragment(content="", error=AI_SERVICE_ERROR)
        return

    logger.info(f"Completion streamed: fragments={emitted}")


def stream_pitch(
    llm: BaseChatModel, profile: Profile | None, problem: str
) -> AsyncGenerator[StreamFragment, None]:
    logger.info(f"Generating pitch: problem_chars={len(problem)}")
    return stream_completion(llm, build_pitch_messages(profile, problem))


def stream_answer(
    llm: BaseChatModel,
    profile: Profile | None,
    question: str,
    history: list[ChatTurn],
    max_turns: int,
) -> AsyncGenerator[StreamFragment, None]:
    logger.info(f"Answering question: history_turns={len(history)}")
    return stream_completion(
        llm, build_assistant_messages(profile, question, history, max_turns)
    )
