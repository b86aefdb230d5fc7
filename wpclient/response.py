"""Translation of raw HTTP responses into JSON values or typed errors."""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Tuple, Union

from .errors import NotFoundError, ServerError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

Body = Union[bytes, str, None]

BODY_PREVIEW = 500


def _text(body: Body) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def content_type(headers: Mapping[str, str]) -> str:
    """Return the media type of ``headers`` without its parameters."""
    for name, value in headers.items():
        if name.lower() == "content-type":
            return value.split(";", 1)[0].strip().lower()
    return ""


def bad_request_details(body: Body) -> Tuple[Optional[str], str, Any]:
    """Extract ``(code, message, details)`` from a 400 response body.

    WordPress answers with either a list of error objects or a single one.
    A malformed body yields a generic "Bad Request" message.
    """
    try:
        payload = json.loads(_text(body))
        details = payload[0] if isinstance(payload, list) else payload
        code = details.get("code")
        message = details.get("message") or "Bad Request"
    except (ValueError, LookupError, TypeError, AttributeError):
        return None, "Bad Request", None
    data = details.get("data")
    params = data.get("params") if isinstance(data, dict) else None
    return code, message, params


def check_status(status: int, body: Body = None) -> None:
    """Raise the error matching ``status``; return quietly on 200/201."""
    if status in (200, 201):
        return
    if status == 404:
        raise NotFoundError("Could not find resource")
    if status == 400:
        code, message, params = bad_request_details(body)
        if code == "rest_post_invalid_id":
            raise NotFoundError("Post ID is not found")
        raise ValidationError(message, code=code, details=params)
    if status in (401, 403):
        raise UnauthorizedError(f"Not authorized (HTTP {status})")

    text = _text(body)
    logger.warning("Unexpected status %s from server", status)
    raise ServerError(
        f"Server returned status code {status}: {text[:BODY_PREVIEW]}",
        status_code=status,
        response_body=text,
    )


def translate(status: int, headers: Mapping[str, str], body: Body) -> Any:
    """Turn a response triple into parsed JSON, raising on any failure."""
    check_status(status, body)

    media_type = content_type(headers)
    if media_type != "application/json":
        raise ServerError(f"Got content type {media_type or 'none'}", status_code=status)

    try:
        return json.loads(_text(body))
    except ValueError as exc:
        raise ServerError(f"Could not parse JSON response: {exc}", status_code=status) from exc
