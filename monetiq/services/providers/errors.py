from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    # network (retryable)
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"

    # validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_VOICE_ID = "INVALID_VOICE_ID"
    TEXT_TOO_LONG = "TEXT_TOO_LONG"

    # account
    AUTH_ERROR = "AUTH_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # provider side
    PROVIDER_ERROR = "PROVIDER_ERROR"
    GENERATION_FAILED = "GENERATION_FAILED"


UNKNOWN_ERROR = "UNKNOWN_ERROR"

_RETRYABLE_CODES = {ErrorCode.NETWORK_ERROR, ErrorCode.TIMEOUT, ErrorCode.RATE_LIMITED}


class ProviderError(RuntimeError):
    def __init__(
        self,
        message: str,
        code: ErrorCode,
        provider: str,
        retryable: bool = False,
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code)
        self.provider = provider
        self.retryable = retryable
        self.original = original

    def __repr__(self) -> str:
        return f"ProviderError(provider={self.provider!r}, code={self.code.value!r}, message={self.message!r})"


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, ProviderError):
        return False
    return exc.retryable or exc.code in _RETRYABLE_CODES


def error_code_of(exc: BaseException) -> str:
    if isinstance(exc, ProviderError):
        return exc.code.value
    return UNKNOWN_ERROR
