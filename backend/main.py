import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.analysis import analyze_image
from backend.chat import continue_conversation, initialize_session, send_turn
from backend.config import LOG_LEVEL
from backend.errors import FashionGPTError, InputValidationError, ProviderError
from backend.models import (
    AnalyzeResponse, ChatRequest, ChatResponse, ErrorResponse,
    HealthResponse, ModelsResponse,
)
from backend.provider import GeminiProvider, get_provider
from backend.upload import UploadedImage, check_content_length, validated_image

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fashion GPT")

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@app.middleware("http")
async def reject_oversized_uploads(request: Request, call_next):
    if request.headers.get("content-type", "").startswith("multipart/form-data"):
        try:
            check_content_length(request.headers.get("content-length"))
        except InputValidationError as exc:
            return _error(exc.status_code, exc.message, exc.details)
    return await call_next(request)


# added last so it wraps the size check and 413s still carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FashionGPTError)
async def fashion_gpt_error_handler(request: Request, exc: FashionGPTError) -> JSONResponse:
    if isinstance(exc, ProviderError):
        logger.error("%s %s failed upstream: %s", request.method, request.url.path, exc.details)
    return _error(exc.status_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return _error(400, "Invalid request", details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Something went wrong!", str(exc))


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="OK",
        message="Fashion GPT API is running",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/api/models", response_model=ModelsResponse, responses=ERROR_RESPONSES)
async def models(provider: GeminiProvider = Depends(get_provider)) -> ModelsResponse:
    return ModelsResponse(models=await provider.list_models())


@app.post(
    "/api/analyze-fashion",
    response_model=AnalyzeResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def analyze_fashion(
    image: UploadedImage = Depends(validated_image),
    provider: GeminiProvider = Depends(get_provider),
) -> AnalyzeResponse:
    """Upload one image (multipart field `image`) and get the normalized color analysis."""
    analysis = await analyze_image(provider, image)
    return AnalyzeResponse(
        analysis=analysis,
        original_image=image.data_url,
        history=initialize_session(analysis),
    )


@app.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat(
    request: ChatRequest,
    provider: GeminiProvider = Depends(get_provider),
) -> ChatResponse:
    """Continue the stylist chat. Send `message`, or a history that already ends with the user's turn."""
    if request.message is not None:
        exchange = await send_turn(provider, request.history, request.message)
    else:
        exchange = await continue_conversation(provider, request.history)
    return ChatResponse(
        answer=exchange.reply.answer,
        follow_up_question=exchange.reply.follow_up_question,
        suggested_replies=exchange.reply.suggested_replies,
        history=exchange.history,
    )


if __name__ == "__main__":
    import uvicorn

    from backend.config import PORT

    uvicorn.run("backend.main:app", host="0.0.0.0", port=PORT)
