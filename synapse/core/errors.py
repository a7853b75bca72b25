from typing import Any, Optional


class FunctionError(Exception):
    """Error raised by an HTTP function; rendered as {"error": ..., "details": ...}."""

    def __init__(self, error: str, status_code: int = 500, details: Optional[Any] = None):
        super().__init__(error)
        self.error = error
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class ExternalAPIError(Exception):
    """Non-2xx answer (or transport failure) from a third-party REST API."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
