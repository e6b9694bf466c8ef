"""Stateless chat loop: seed the transcript from an analysis, then one provider call per user turn.

The caller owns the transcript and resubmits it in full on every request.
Stored history only ever holds plain {role, text} turns; the system
instruction is prepended per call and never stored.
"""

import logging
from dataclasses import dataclass
from typing import Any

from backend.errors import InputValidationError
from backend.models import ChatTurn, NormalizedAnalysis, StructuredChatReply, SuggestedReply
from backend.normalize import extract_json
from backend.prompts import ANALYSIS_SEED_PROMPT, CHAT_SYSTEM_INSTRUCTION
from backend.provider import GeminiProvider, text_content

logger = logging.getLogger(__name__)

DEFAULT_FOLLOW_UP_QUESTION = "Is there anything else you'd like to know about your style?"
DEFAULT_CHAT_REPLIES = (
    "What's the occasion?",
    "Show me shoe options",
    "I don't like these colors",
)
NOT_AVAILABLE = "N/A"


@dataclass
class ChatExchange:
    reply: StructuredChatReply
    history: list[ChatTurn]


def _text(value: Any) -> str:
    """Flatten whatever the model put in a free-text slot into one readable string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, (list, tuple)):
        return ", ".join(t for t in (_text(v) for v in value) if t)
    return str(value)


def _join(values: list[str] | None) -> str:
    return ", ".join(values) if values else NOT_AVAILABLE


def _suggestion_text(suggestion: Any) -> str:
    if isinstance(suggestion, dict):
        return _text(suggestion.get("title") or suggestion.get("text"))
    return _text(suggestion)


def _style_text(style: list | dict | None) -> str:
    if not style:
        return NOT_AVAILABLE
    if isinstance(style, dict):
        items = [
            _suggestion_text(s)
            for suggestions in style.values()
            for s in (suggestions if isinstance(suggestions, list) else [suggestions])
        ]
    else:
        items = [_suggestion_text(s) for s in style]
    return _join([i for i in items if i])


def _seasonal_text(seasonal: str | list | dict | None) -> str:
    if isinstance(seasonal, dict) and seasonal.get("bestSeasons"):
        return f"Best for: {_text(seasonal['bestSeasons'])}"
    if isinstance(seasonal, (str, list)):
        return _text(seasonal) or NOT_AVAILABLE
    return NOT_AVAILABLE


def _psychology_text(psychology: str | list | dict | None) -> str:
    if isinstance(psychology, dict):
        aspects = [_text(psychology.get(k)) for k in ("emotionalImpact", "socialPerception")]
        return ". ".join(a for a in aspects if a) or NOT_AVAILABLE
    return _text(psychology) or NOT_AVAILABLE


def summarize_analysis(analysis: NormalizedAnalysis) -> str:
    """Plain-text digest of an analysis, used as the model's first turn."""
    lines = [
        f"Dominant Colors: {_join(analysis.dominant_colors)}",
        f"Complementary Colors: {_join(analysis.complementary_colors)}",
        f"Seasonal Recommendations: {_seasonal_text(analysis.seasonal_recommendations)}",
        f"Style Suggestions: {_style_text(analysis.style_suggestions)}",
        f"Color Psychology: {_psychology_text(analysis.color_psychology)}",
    ]
    skin = analysis.skin_tone_analysis
    if skin is not None and skin.detected:
        parts = []
        if skin.undertone:
            parts.append(f"{skin.undertone} undertone")
        if skin.season:
            parts.append(f"{skin.season} season")
        lines.append(f"Skin Tone: {', '.join(parts) or NOT_AVAILABLE}")
    if analysis.raw_response:
        lines.append(f"Raw Analysis: {analysis.raw_response}")
    return "\n".join(lines)


def initialize_session(analysis: NormalizedAnalysis) -> list[ChatTurn]:
    return [
        ChatTurn(role="user", text=ANALYSIS_SEED_PROMPT),
        ChatTurn(role="model", text=summarize_analysis(analysis)),
    ]


def fallback_reply(raw_text: str) -> StructuredChatReply:
    return StructuredChatReply(
        answer=raw_text,
        follow_up_question=DEFAULT_FOLLOW_UP_QUESTION,
        suggested_replies=[SuggestedReply(text=t) for t in DEFAULT_CHAT_REPLIES],
    )


def parse_chat_reply(text: str) -> StructuredChatReply:
    """Parse the model's three-key JSON reply. Never raises."""
    try:
        data = extract_json(text)
        if not isinstance(data, dict):
            raise ValueError("chat reply is not a JSON object")
        answer = data.get("answer")
        follow_up = data.get("followUpQuestion")
        replies = data.get("suggestedReplies")
        if not isinstance(answer, str) or not isinstance(follow_up, str) or not isinstance(replies, list):
            raise ValueError(f"chat reply is missing required keys, got {sorted(data)}")
        return StructuredChatReply(answer=answer, follow_up_question=follow_up, suggested_replies=replies)
    except ValueError as e:
        logger.warning("Falling back to raw chat text: %s", e)
        return fallback_reply(text)


async def continue_conversation(provider: GeminiProvider, history: list[ChatTurn]) -> ChatExchange:
    """Answer the last user turn. The input list is left untouched."""
    if not history:
        raise InputValidationError("History array is required in request body")
    if history[-1].role != "user":
        raise InputValidationError(
            "The last turn in history must be a user message",
            details=f"Last turn has role {history[-1].role!r}",
        )

    contents = [text_content("user", CHAT_SYSTEM_INSTRUCTION)]
    contents.extend(text_content(turn.role, turn.text) for turn in history)

    text = await provider.generate(contents)
    reply = parse_chat_reply(text)
    return ChatExchange(reply=reply, history=[*history, ChatTurn(role="model", text=reply.answer)])


async def send_turn(provider: GeminiProvider, history: list[ChatTurn], user_text: str) -> ChatExchange:
    """Append the user's message and get the model's structured reply."""
    if not user_text or not user_text.strip():
        raise InputValidationError("Message must not be empty")
    return await continue_conversation(provider, [*history, ChatTurn(role="user", text=user_text.strip())])
