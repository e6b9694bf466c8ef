"""Gemini wrapper: one generate_content call per request, transport errors mapped to ProviderError."""

import asyncio
import logging
from functools import lru_cache

from google import genai
from google.genai import errors, types
import httpx

from backend import config
from backend.errors import ConfigError, ProviderError

logger = logging.getLogger(__name__)

NETWORK_ERROR_DETAILS = "Network error - no response received"

SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


def _generation_config() -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        temperature=config.GENERATION_TEMPERATURE,
        top_k=config.GENERATION_TOP_K,
        top_p=config.GENERATION_TOP_P,
        max_output_tokens=config.GENERATION_MAX_OUTPUT_TOKENS,
        safety_settings=[
            types.SafetySetting(
                category=category,
                threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            )
            for category in SAFETY_CATEGORIES
        ],
    )


def text_content(role: str, text: str) -> types.Content:
    return types.Content(role=role, parts=[types.Part.from_text(text=text)])


def image_content(prompt: str, data: bytes, mime_type: str) -> types.Content:
    return types.Content(
        role="user",
        parts=[
            types.Part.from_text(text=prompt),
            types.Part.from_bytes(data=data, mime_type=mime_type),
        ],
    )


class GeminiProvider:
    def __init__(
        self,
        api_key: str,
        model: str = config.GEMINI_MODEL,
        timeout_seconds: float = config.PROVIDER_TIMEOUT_SECONDS,
    ):
        self.model = model
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    async def generate(self, contents: list[types.Content]) -> str:
        """Send the turns to Gemini and return the first candidate's text."""
        logger.info("Gemini request: model=%s turns=%d", self.model, len(contents))
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=self.model,
                contents=contents,
                config=_generation_config(),
            )
        except errors.APIError as e:
            logger.error("Gemini API error %s: %s", e.code, e.message)
            raise ProviderError(f"Gemini request failed: {e.message}", status=e.code, body=e.details) from e
        except httpx.HTTPError as e:
            logger.error("Gemini network error: %r", e)
            raise ProviderError(f"Gemini request failed: {e!r}", body=NETWORK_ERROR_DETAILS) from e

        if not response.candidates or response.text is None:
            raise ProviderError(
                "No candidates in Gemini response",
                body=f"No candidates in Gemini response: {response.model_dump_json(exclude_none=True)}",
            )
        logger.info("Gemini response: %d chars", len(response.text))
        return response.text

    async def list_models(self) -> list[str]:
        try:
            return await asyncio.to_thread(lambda: [m.name for m in self._client.models.list()])
        except errors.APIError as e:
            raise ProviderError(f"Failed to fetch models: {e.message}", status=e.code, body=e.details) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to fetch models: {e!r}", body=NETWORK_ERROR_DETAILS) from e


@lru_cache(maxsize=4)
def _provider_for(api_key: str, model: str) -> GeminiProvider:
    return GeminiProvider(api_key=api_key, model=model)


def get_provider() -> GeminiProvider:
    """FastAPI dependency. Fails before any upstream call when the key is missing."""
    if not config.GEMINI_API_KEY:
        raise ConfigError("Gemini API key not configured")
    return _provider_for(config.GEMINI_API_KEY, config.GEMINI_MODEL)
