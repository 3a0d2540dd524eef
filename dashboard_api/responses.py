"""Request/response types and the API error taxonomy."""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any


class ApiError(Exception):
    """An error that maps directly onto an HTTP error response."""

    status_code = 500

    def __init__(self, error: str, message: str | None = None, status_code: int | None = None):
        super().__init__(error)
        self.error = error
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict[str, Any]:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class NotFound(ApiError):
    status_code = 404


class MethodNotAllowed(ApiError):
    status_code = 405


class UpstreamError(Exception):
    """A third-party API failed, either with a non-2xx status or at the network level."""

    def __init__(self, upstream: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.upstream = upstream
        self.message = message
        self.status_code = status_code


@dataclass
class Request:
    """An inbound HTTP request, independent of the hosting adapter."""

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in (self.headers or {}).items()}
        self.query = dict(self.query or {})

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def param(self, name: str, default: str = "") -> str:
        value = self.query.get(name)
        if value is None:
            return default
        return value.strip()

    def require(self, *names: str) -> dict[str, str]:
        """Return the named query parameters, raising BadRequest if any is blank."""
        values = {name: self.param(name) for name in names}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise BadRequest(f"Missing required parameters: {', '.join(missing)}")
        return values

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> "Request":
        """Build a request from an API Gateway REST (v1) or HTTP API (v2) event."""
        context = event.get("requestContext") or {}
        http = context.get("http") or {}
        method = event.get("httpMethod") or http.get("method") or "GET"
        path = event.get("path") or event.get("rawPath") or http.get("path") or "/"
        return cls(
            method=method,
            path=path,
            query=event.get("queryStringParameters") or {},
            headers=event.get("headers") or {},
            request_id=context.get("requestId") or uuid.uuid4().hex,
        )


@dataclass
class Response:
    """An outbound JSON response."""

    status_code: int = 200
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    def encoded_body(self) -> str:
        if self.body is None:
            return ""
        return json.dumps(self.body, ensure_ascii=False)

    def to_lambda(self) -> dict[str, Any]:
        headers = dict(self.headers)
        if self.body is not None:
            headers.setdefault("Content-Type", "application/json")
        return {
            "statusCode": self.status_code,
            "headers": headers,
            "body": self.encoded_body(),
        }


def json_response(body: Any, status_code: int = 200, cache_control: str | None = None) -> Response:
    response = Response(status_code=status_code, body=body)
    if cache_control:
        response.headers["Cache-Control"] = cache_control
    return response


def error_response(error: ApiError) -> Response:
    return Response(status_code=error.status_code, body=error.to_body())
