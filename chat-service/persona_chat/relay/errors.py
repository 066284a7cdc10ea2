"""Exceptions raised inside the relay and turned into HTTP responses by the handler."""

INVALID_JSON = "Invalid JSON"
INVALID_MESSAGES = "Missing or invalid messages array."
INVALID_IMAGE = "No valid image uploaded."
INVALID_MULTIPART = "Invalid multipart body."
MISSING_TEXT = "Missing text."
METHOD_NOT_ALLOWED = "Method Not Allowed"
MISSING_CREDENTIAL = "OpenAI API key not set in environment variables."


class RelayError(Exception):
    """A request the relay refuses before contacting the provider."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class UpstreamError(Exception):
    """A non-2xx answer from the provider, kept verbatim."""

    def __init__(self, status_code: int, text: str) -> None:
        super().__init__(f"Upstream returned {status_code}")
        self.status_code = status_code
        self.text = text
