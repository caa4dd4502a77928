"""
错误类型 - Error Types

Every failure the command pipeline surfaces to a caller. Each class carries the
HTTP status it maps to and a public message that is safe to return to clients;
diagnostic detail (raw upstream text, driver errors) stays server-side.
"""

from __future__ import annotations

from typing import Optional


class StockVoiceError(Exception):
    """Base class for pipeline failures."""

    status_code = 500
    public_message = "Command processing failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)


class InvalidLanguage(StockVoiceError):
    status_code = 400
    public_message = "Invalid language parameter"

    def __init__(self, language: object):
        self.language = language
        super().__init__(f"Unsupported language: {language!r}")


class TranscriptionFailure(StockVoiceError):
    public_message = "Speech recognition failed: no transcript text"


class CompletionUnavailable(StockVoiceError):
    public_message = "Completion service is not configured"


class CompletionFailure(StockVoiceError):
    public_message = "Completion service request failed"


class ResponseParseError(StockVoiceError):
    """Completion output was not valid JSON."""

    public_message = "Failed to parse completion response"

    def __init__(self, raw_text: str, reason: str = ""):
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"{self.public_message}: {reason}" if reason else self.public_message)


class SchemaViolation(StockVoiceError):
    """Completion output was JSON but lacked a usable 'changes' list."""

    public_message = "Field 'changes' not found in completion response"

    def __init__(self, raw_text: str, reason: str = ""):
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"{self.public_message}: {reason}" if reason else self.public_message)


class StorageError(StockVoiceError):
    public_message = "Storage operation failed"
