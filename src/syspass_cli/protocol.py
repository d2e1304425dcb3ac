#!/usr/bin/env python3
"""JSON-RPC Protocol - Request/response envelopes for the sysPass API.

Defines the envelope format shared by both API generations and the
mapping of server error payloads onto ApiError codes.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import ApiError

JSONRPC_VERSION = "2.0"

# Parameters never written to logs
SECRET_PARAMS = ("authToken", "tokenPass", "pass")

# JSON-RPC error codes with a fixed meaning
ERROR_CODES = {
    -32700: ApiError.INVALID_RESPONSE,  # parse error
    -32600: ApiError.SERVER_ERROR,  # invalid request
    -32601: ApiError.NOT_SUPPORTED,  # method not found
    401: ApiError.UNAUTHORIZED,
    403: ApiError.UNAUTHORIZED,
    404: ApiError.NOT_FOUND,
}

UNAUTHORIZED_HINTS = ("unauthorized", "not allowed", "permission", "token", "denied")


@dataclass
class Request:
    """A request from the CLI to the vault server."""

    method: str
    id: int
    params: Dict[str, Any] = field(default_factory=dict)
    jsonrpc: str = JSONRPC_VERSION


@dataclass
class Response:
    """A response from the vault server."""

    id: Optional[int]
    result: Any = None
    error: Optional[Dict[str, Any]] = None


def serialize_request(request: Request) -> bytes:
    """Serialize a request to JSON bytes.

    Args:
        request: Request object

    Returns:
        UTF-8 encoded JSON document

    """
    obj = {
        "jsonrpc": request.jsonrpc,
        "method": request.method,
        "params": request.params,
        "id": request.id,
    }
    return json.dumps(obj).encode("utf-8")


def parse_response(data: bytes, request_id: Optional[int] = None) -> Response:
    """Parse a raw response body.

    Args:
        data: Raw bytes returned by the transport
        request_id: Correlation id of the request this answers

    Returns:
        Response object

    Raises:
        ApiError: If the body is not a JSON object or answers another request

    """
    try:
        obj = json.loads(data)
    except (ValueError, UnicodeDecodeError) as e:
        raise ApiError(f"Server response did not contain JSON: {e}", ApiError.INVALID_RESPONSE)

    if not isinstance(obj, dict):
        raise ApiError("Server response is not a JSON object", ApiError.INVALID_RESPONSE)

    response_id = obj.get("id")
    if request_id is not None and response_id is not None and response_id != request_id:
        raise ApiError(
            f"Response id {response_id} does not match request id {request_id}",
            ApiError.INVALID_RESPONSE
        )

    error = obj.get("error")
    if error is not None and not isinstance(error, dict):
        error = {"message": str(error)}

    return Response(
        id=response_id,
        result=obj.get("result"),
        error=error
    )


def classify_error(code: Any, message: str) -> str:
    """Map a server error payload to an ApiError code."""
    if code in ERROR_CODES:
        return ERROR_CODES[code]

    text = (message or "").lower()
    if "not found" in text:
        return ApiError.NOT_FOUND

    if any(hint in text for hint in UNAUTHORIZED_HINTS):
        return ApiError.UNAUTHORIZED

    return ApiError.SERVER_ERROR


def error_from_response(response: Response) -> ApiError:
    """Build the ApiError for a response carrying an error payload."""
    error = response.error or {}
    message = str(error.get("message") or "Unknown error")
    return ApiError(message, classify_error(error.get("code"), message))


def mask_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of params safe to log."""
    return {
        key: ("********" if key in SECRET_PARAMS else value)
        for key, value in params.items()
    }
