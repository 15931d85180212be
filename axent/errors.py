"""
Domain errors rendered as ``{"error": ..., "response": ...}`` JSON bodies
"""

from typing import Optional, Dict, Any


class AxentError(Exception):
    """Base error carrying the HTTP status and the user-facing message"""

    status_code: int = 500

    def __init__(self, error: str, response: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        self.response = response
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.response is not None:
            body["response"] = self.response
        return body


class UnauthorizedError(AxentError):
    status_code = 401


class ValidationError(AxentError):
    status_code = 400


class UpstreamError(AxentError):
    """A third-party provider (AI gateway, quote source) failed"""
    status_code = 500


class RateLimitedError(UpstreamError):
    status_code = 429


class QuotaExceededError(UpstreamError):
    status_code = 402
