from __future__ import annotations

from typing import List

REDACTED = "[REDACTED]"


def redact(text: str, secret: str | None) -> str:
    """Replace every occurrence of ``secret`` in ``text`` with a fixed marker."""
    if not secret:
        return text
    return text.replace(secret, REDACTED)


class SentinelOneError(RuntimeError):
    """Base class for everything this package raises on purpose."""


class ConfigurationError(SentinelOneError):
    pass


class InvalidParameterError(SentinelOneError):
    pass


class NotFoundError(SentinelOneError):
    pass


# ---- transport ----
class RequestTimeoutError(SentinelOneError):
    def __init__(self, elapsed_ms: int):
        super().__init__(f"Request timeout after {elapsed_ms}ms")
        self.elapsed_ms = elapsed_ms


class NetworkError(SentinelOneError):
    pass


class HttpError(SentinelOneError):
    def __init__(self, status: int, status_text: str, body: str):
        super().__init__(f"HTTP {status}: {status_text} - {body}")
        self.status = status
        self.status_text = status_text
        self.body = body


# ---- GraphQL ----
class QueryError(SentinelOneError):
    def __init__(self, messages: List[str]):
        super().__init__(f"GraphQL errors: {', '.join(messages)}")
        self.messages = messages


class MissingDataError(SentinelOneError):
    pass


# ---- Deep Visibility ----
class SubmissionError(SentinelOneError):
    pass


class JobFailedError(SentinelOneError):
    def __init__(self, query_id: str, detail: str | None = None):
        super().__init__(f"Query {query_id} failed: {detail or 'Unknown error'}")
        self.query_id = query_id
        self.detail = detail


class JobCanceledError(SentinelOneError):
    def __init__(self, query_id: str):
        super().__init__(f"Query {query_id} was canceled")
        self.query_id = query_id
