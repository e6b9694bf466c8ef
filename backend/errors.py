"""Error taxonomy surfaced by the HTTP layer."""

import json


class FashionGPTError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InputValidationError(FashionGPTError, ValueError):
    """Bad or missing upload, or a malformed chat request."""

    status_code = 400

    def __init__(self, message: str, details: str | None = None, status_code: int | None = None):
        super().__init__(message, details)
        if status_code is not None:
            self.status_code = status_code


class ConfigError(FashionGPTError, RuntimeError):
    status_code = 500


class ProviderError(FashionGPTError, RuntimeError):
    """The upstream model call failed at the transport level."""

    status_code = 500

    def __init__(self, message: str, status: int | None = None, body: object = None):
        self.status = status
        self.body = body
        if status is not None:
            details = f"API Error: {status} - {_render(body)}"
        elif body is not None:
            details = _render(body)
        else:
            details = message
        super().__init__(message, details)


def _render(body: object) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, default=str)
