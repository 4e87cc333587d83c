from __future__ import annotations

from ollamaproxy.log import preview


class GatewayError(Exception):
    """Base class for failures that map onto a front-API error response."""

    status_code: int = 502
    error_type: str = "gateway_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.status_code,
            }
        }


class MalformedRequest(GatewayError):
    status_code = 400
    error_type = "invalid_request_error"


class MissingInput(MalformedRequest):
    def __init__(self, field: str = "input"):
        super().__init__(f"'{field}' is required")
        self.field = field


class UnsupportedOperation(GatewayError):
    status_code = 501
    error_type = "not_implemented"


class UpstreamUnreachable(GatewayError):
    error_type = "upstream_unreachable"

    def __init__(self, url: str, reason: str):
        super().__init__(f"backend unreachable at {url}: {reason}")
        self.url = url
        self.reason = reason


class UpstreamError(GatewayError):
    error_type = "upstream_error"

    def __init__(self, path: str, status: int, body: str):
        super().__init__(f"backend {path} error: {status} {preview(body, 200)}")
        self.path = path
        self.status = status
        self.body = body


class StreamDecodeGlitch(GatewayError):
    """A single streamed line that is not a usable JSON object.

    Never reaches the caller: the stream translator drops the line and moves on.
    """

    def __init__(self, line: str, reason: str):
        super().__init__(f"undecodable stream line ({reason}): {preview(line, 80)}")
        self.line = line


__all__ = [
    "GatewayError",
    "MalformedRequest",
    "MissingInput",
    "UnsupportedOperation",
    "UpstreamUnreachable",
    "UpstreamError",
    "StreamDecodeGlitch",
]
