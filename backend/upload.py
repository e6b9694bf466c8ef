import base64
import logging
from dataclasses import dataclass

from fastapi import File, UploadFile
from starlette.formparsers import MultiPartParser

from backend import config
from backend.errors import InputValidationError

logger = logging.getLogger(__name__)

# Starlette spools file parts larger than this to a temp file; keep an
# accepted upload (plus its multipart framing) in memory.
MultiPartParser.spool_max_size = max(
    MultiPartParser.spool_max_size, config.MAX_UPLOAD_BYTES + config.MULTIPART_OVERHEAD_BYTES
)


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    mime_type: str
    filename: str | None = None

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64}"


def too_large(max_bytes: int) -> InputValidationError:
    return InputValidationError(
        "File too large",
        details=f"Images must be at most {max_bytes} bytes",
        status_code=413,
    )


def check_content_length(content_length: str | None) -> None:
    """Reject a request whose declared body cannot hold an image within the limit.

    Runs before the multipart body is parsed. Requests without a usable
    Content-Length (chunked uploads) are left to read_image().
    """
    if content_length is None or not content_length.isdigit():
        return
    limit = config.MAX_UPLOAD_BYTES + config.MULTIPART_OVERHEAD_BYTES
    if int(content_length) > limit:
        logger.warning("Rejecting upload with Content-Length %s (limit %d)", content_length, limit)
        raise too_large(config.MAX_UPLOAD_BYTES)


async def read_image(file: UploadFile, max_bytes: int | None = None) -> UploadedImage:
    """Validate type and size of an already-parsed multipart file.

    The size check here is the exact one: it counts the file's bytes, where
    check_content_length() only sees the whole request body.
    """
    if max_bytes is None:
        max_bytes = config.MAX_UPLOAD_BYTES

    mime_type = (file.content_type or "").lower()
    if not mime_type.startswith("image/"):
        raise InputValidationError(
            "Only image files are allowed!",
            details=f"Received content type {file.content_type!r}",
        )

    buf = bytearray()
    while chunk := await file.read(config.UPLOAD_CHUNK_SIZE):
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise too_large(max_bytes)

    if not buf:
        raise InputValidationError("No image file provided", details="The uploaded file is empty")

    return UploadedImage(data=bytes(buf), mime_type=mime_type, filename=file.filename)


async def validated_image(image: UploadFile = File(...)) -> UploadedImage:
    """FastAPI dependency for the multipart `image` field."""
    return await read_image(image)
