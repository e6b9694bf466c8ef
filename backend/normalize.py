"""Map the provider's analysis JSON, whatever shape it arrives in, onto NormalizedAnalysis.

Four shapes have been produced by successive versions of the analysis prompt:

    enhanced   skinToneAnalysis + colorAnalysis + styleGuide + conversation
    styled     colorAnalysis + styleGuide + conversation
    wrapped    {"fullAnalysis": {...legacy fields...}, "openingLine", "suggestedReplies"}
    legacy     flat dominantColors / complementaryColors / ... object

Shapes are checked in that order against the parsed object's keys. Each
top-level field is validated on its own and dropped if it does not fit, so
one bad value never costs the rest of the record. Only text that is not a
JSON object becomes the sentinel record. normalize_analysis() never raises.
"""

import json
import logging
import re
from typing import Any, Callable, NamedTuple

from pydantic import ValidationError

from backend.models import NormalizedAnalysis, SuggestedReply

logger = logging.getLogger(__name__)

DEFAULT_OPENING_LINE = "Great! I've analyzed your fashion image. What would you like to know more about?"
DEFAULT_SUGGESTED_REPLIES = (
    "Tell me about the colors",
    "What occasions work best?",
    "Show me style suggestions",
)
FALLBACK_SEASONAL_TEXT = "Analysis completed"
FALLBACK_PSYCHOLOGY_TEXT = "Color analysis provided"

_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)\n?[ \t]*```", re.DOTALL)
_PREVIEW_CHARS = 200


class ShapeError(ValueError):
    pass


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the stripped text if there is none."""
    text = text.strip()
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def extract_json(text: str) -> Any:
    """Strip markdown code fences if present, then parse JSON."""
    return json.loads(strip_code_fence(text))


def default_suggested_replies() -> list[SuggestedReply]:
    return [SuggestedReply(text=t) for t in DEFAULT_SUGGESTED_REPLIES]


def sentinel_analysis(raw_text: str) -> NormalizedAnalysis:
    return NormalizedAnalysis(
        raw_response=raw_text,
        image_palette=[],
        suggested_palettes=[],
        suggestions_by_occasion={},
        dominant_colors=[],
        complementary_colors=[],
        seasonal_recommendations=FALLBACK_SEASONAL_TEXT,
        style_suggestions=[],
        color_psychology=FALLBACK_PSYCHOLOGY_TEXT,
        opening_line=DEFAULT_OPENING_LINE,
        suggested_replies=default_suggested_replies(),
    )


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring %s: expected an object, got %s", key, type(value).__name__)
        return {}
    return value


def _decode_styled(data: dict) -> dict:
    color = _section(data, "colorAnalysis")
    style = _section(data, "styleGuide")
    conversation = _section(data, "conversation")
    return {
        "imagePalette": color.get("imagePalette"),
        "suggestedPalettes": color.get("suggestedPalettes"),
        "colorPsychology": color.get("colorPsychology"),
        "seasonalFit": style.get("seasonalFit"),
        "suggestionsByOccasion": style.get("suggestionsByOccasion"),
        "openingLine": conversation.get("openingLine"),
        "suggestedReplies": conversation.get("suggestedReplies"),
    }


def _decode_enhanced(data: dict) -> dict:
    fields = _decode_styled(data)
    fields["skinToneAnalysis"] = _section(data, "skinToneAnalysis") or None
    return fields


def _decode_wrapped(data: dict) -> dict:
    fields = dict(_section(data, "fullAnalysis"))
    # top-level conversational hooks win over anything nested
    for key in ("openingLine", "suggestedReplies"):
        if data.get(key) is not None:
            fields[key] = data[key]
    return fields


def _decode_legacy(data: dict) -> dict:
    return dict(data)


class ShapeDecoder(NamedTuple):
    name: str
    required: frozenset[str]
    decode: Callable[[dict], dict]
    projects_legacy: bool


DECODERS: tuple[ShapeDecoder, ...] = (
    ShapeDecoder(
        "enhanced",
        frozenset({"skinToneAnalysis", "colorAnalysis", "styleGuide", "conversation"}),
        _decode_enhanced,
        True,
    ),
    ShapeDecoder("styled", frozenset({"colorAnalysis", "styleGuide", "conversation"}), _decode_styled, True),
    ShapeDecoder("wrapped", frozenset({"fullAnalysis"}), _decode_wrapped, False),
    ShapeDecoder("legacy", frozenset(), _decode_legacy, False),
)


def select_decoder(data: dict) -> ShapeDecoder:
    keys = data.keys()
    for decoder in DECODERS[:-1]:
        if decoder.required <= keys:
            return decoder
    return DECODERS[-1]


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def project_legacy_fields(analysis: NormalizedAnalysis) -> None:
    """Fill the flat legacy fields from the richer structure, never overwriting."""
    if analysis.dominant_colors is None and analysis.image_palette is not None:
        analysis.dominant_colors = _unique(
            [c.name or c.hex for c in analysis.image_palette if c.name or c.hex]
        )
    if analysis.complementary_colors is None and analysis.suggested_palettes is not None:
        analysis.complementary_colors = _unique(
            [c.name or c.hex for p in analysis.suggested_palettes for c in p.colors if c.name or c.hex]
        )
    if analysis.seasonal_recommendations is None and analysis.seasonal_fit is not None:
        analysis.seasonal_recommendations = analysis.seasonal_fit.model_dump(by_alias=True, exclude_none=True)
    if analysis.style_suggestions is None and analysis.suggestions_by_occasion is not None:
        analysis.style_suggestions = [
            f"{occasion}: {suggestion.text}" for occasion, suggestion in analysis.suggestions_by_occasion.items()
        ]


def _apply_conversation_defaults(analysis: NormalizedAnalysis) -> None:
    if not analysis.opening_line:
        analysis.opening_line = DEFAULT_OPENING_LINE
    if not analysis.suggested_replies:
        analysis.suggested_replies = default_suggested_replies()


def _validate_fields(fields: dict[str, Any]) -> NormalizedAnalysis:
    """Validate field by field, dropping (and logging) only the ones that do not fit."""
    kept = {}
    for key, value in fields.items():
        try:
            NormalizedAnalysis.model_validate({key: value})
        except ValidationError as e:
            logger.warning("Dropping analysis field %s: %s", key, e.errors(include_url=False)[0]["msg"])
            continue
        kept[key] = value
    return NormalizedAnalysis.model_validate(kept)


def decode_analysis(data: Any) -> NormalizedAnalysis:
    """Decode an already-parsed provider object. Raises ValueError only for non-objects."""
    if not isinstance(data, dict):
        raise ShapeError(f"expected a JSON object, got {type(data).__name__}")

    decoder = select_decoder(data)
    fields = {k: v for k, v in decoder.decode(data).items() if v is not None}
    analysis = _validate_fields(fields)
    logger.debug("Analysis decoded as %s shape", decoder.name)

    if decoder.projects_legacy:
        project_legacy_fields(analysis)
    _apply_conversation_defaults(analysis)
    return analysis


def normalize_analysis(text: str) -> NormalizedAnalysis:
    try:
        return decode_analysis(extract_json(text))
    except ValueError as e:
        logger.warning("Falling back to raw analysis text (%s): %.*s", e, _PREVIEW_CHARS, text)
        return sentinel_analysis(text)
