import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))

MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
UPLOAD_CHUNK_SIZE: int = 64 * 1024
# allowance for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES: int = 64 * 1024

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
PORT: int = int(os.getenv("PORT", "5001"))

GENERATION_TEMPERATURE: float = 0.7
GENERATION_TOP_K: int = 40
GENERATION_TOP_P: float = 0.95
GENERATION_MAX_OUTPUT_TOKENS: int = 2048
