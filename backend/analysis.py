"""Build the analysis request, call the provider, normalize what comes back."""

import logging

from backend.models import NormalizedAnalysis
from backend.normalize import normalize_analysis
from backend.prompts import ANALYSIS_PROMPT
from backend.provider import GeminiProvider, image_content
from backend.upload import UploadedImage

logger = logging.getLogger(__name__)


def build_analysis_contents(image: UploadedImage, prompt: str = ANALYSIS_PROMPT) -> list:
    return [image_content(prompt, image.data, image.mime_type)]


async def analyze_image(provider: GeminiProvider, image: UploadedImage) -> NormalizedAnalysis:
    """Run one analysis. Only transport failures raise (ProviderError)."""
    logger.info("Analyzing %s (%d bytes)", image.mime_type, len(image.data))
    text = await provider.generate(build_analysis_contents(image))
    return normalize_analysis(text)
