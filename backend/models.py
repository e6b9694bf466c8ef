from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class SuggestedReply(CamelModel):
    """A quick reply chip. Emitted as a plain string when it carries no action."""

    text: str
    action: str | None = None

    @model_validator(mode="before")
    @classmethod
    def coerce_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value

    @model_serializer(mode="plain")
    def serialize(self) -> str | dict[str, str]:
        if self.action is None:
            return self.text
        return {"text": self.text, "action": self.action}


class PaletteColor(CamelModel):
    name: str | None = None
    hex: str | None = None
    role: str | None = None
    item: str | None = None


class SuggestedPalette(CamelModel):
    name: str | None = None
    description: str | None = None
    colors: list[PaletteColor] = Field(default_factory=list)


class SkinToneAnalysis(CamelModel):
    detected: bool = False
    undertone: str | None = None
    season: str | None = None
    confidence: str | None = None
    reasoning: str | None = None


class SeasonalFit(CamelModel):
    best_seasons: list[str] = Field(default_factory=list)
    avoid_seasons: list[str] = Field(default_factory=list)
    rationale: str | None = None


class OccasionVisual(CamelModel):
    item: str | None = None
    color: str | None = None


class OccasionSuggestion(CamelModel):
    text: str
    visuals: list[OccasionVisual] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def coerce_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value


class NormalizedAnalysis(CamelModel):
    """Canonical superset of every analysis shape the provider has produced."""

    model_config = ConfigDict(extra="allow")

    skin_tone_analysis: SkinToneAnalysis | None = None
    image_palette: list[PaletteColor] | None = None
    suggested_palettes: list[SuggestedPalette] | None = None
    color_psychology: str | list[Any] | dict[str, Any] | None = None
    seasonal_fit: SeasonalFit | None = None
    suggestions_by_occasion: dict[str, OccasionSuggestion] | None = None

    dominant_colors: list[str] | None = None
    complementary_colors: list[str] | None = None
    seasonal_recommendations: str | list[Any] | dict[str, Any] | None = None
    style_suggestions: list[Any] | dict[str, Any] | None = None

    opening_line: str | None = None
    suggested_replies: list[SuggestedReply] | None = None
    raw_response: str | None = None


class ChatTurn(CamelModel):
    role: Literal["user", "model"]
    text: str

    @model_validator(mode="before")
    @classmethod
    def flatten_parts(cls, value: Any) -> Any:
        """Accept provider-style turns: {"role": ..., "parts": [{"text": ...}]}."""
        if isinstance(value, dict) and "text" not in value and isinstance(value.get("parts"), list):
            texts = [p["text"] for p in value["parts"] if isinstance(p, dict) and isinstance(p.get("text"), str)]
            return {"role": value.get("role"), "text": "\n".join(texts)}
        return value


class StructuredChatReply(CamelModel):
    answer: str
    follow_up_question: str
    suggested_replies: list[SuggestedReply]


class AnalyzeResponse(CamelModel):
    success: bool = True
    analysis: NormalizedAnalysis
    original_image: str
    history: list[ChatTurn]


class ChatRequest(CamelModel):
    history: list[ChatTurn]
    message: str | None = None


class ChatResponse(CamelModel):
    success: bool = True
    answer: str
    follow_up_question: str
    suggested_replies: list[SuggestedReply]
    history: list[ChatTurn]


class ModelsResponse(CamelModel):
    success: bool = True
    models: list[str]


class HealthResponse(CamelModel):
    status: str
    message: str
    timestamp: str


class ErrorResponse(CamelModel):
    error: str
    details: str | None = None
