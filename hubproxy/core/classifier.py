"""Inbound request shape detection.

Processing flow:
    1. Transport drains the body stream with `read_raw_body`.
    2. `classify` inspects `x-action` and `content-type` headers.
    3. A binary upload becomes `UploadOp`; a JSON command becomes `JsonOp`.
    4. Anything else raises `InvalidRequest`. A command body that is not
       UTF-8 JSON raises the decode error itself (surfaced as PROXY_FATAL).

Header handling:
    Lookup is case-insensitive. Plain dicts are lower-cased before use.

Key index parsing:
    `x-api-key-index` and `apiKeyIndex` are parsed permissively: absent or
    non-numeric values become `0` instead of failing the request. Leading
    integer prefixes are honored (`"3abc"` -> 3).

Determinism:
    `classify` is pure. The same headers and bytes always produce an equal
    operation.
"""

import json
import math
import re
from collections.abc import AsyncIterable, Mapping
from typing import Any

from pydantic import ValidationError

from hubproxy.core.errors import InvalidRequest
from hubproxy.core.types import (
    JSON_ACTIONS,
    UPLOAD_ACTION,
    ClassifiedOperation,
    CommandBody,
    JsonOp,
    UploadOp,
)


DEFAULT_FILE_NAME = "image.png"
DEFAULT_UPLOAD_CONTENT_TYPE = "application/octet-stream"

ACTION_HEADER = "x-action"
FILE_NAME_HEADER = "x-file-name"
KEY_INDEX_HEADER = "x-api-key-index"

INVALID_ACTION = "Invalid json action"

_INT_PREFIX = re.compile(r"^\s*([+-]?[0-9]+)")


async def read_raw_body(stream: AsyncIterable[bytes | str]) -> bytes:
    """Drain an async chunk stream into one contiguous buffer.

    Content-Length is not trusted; the stream is read until exhausted.
    String chunks are encoded as UTF-8.
    """
    chunks: list[bytes] = []
    async for chunk in stream:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        chunks.append(chunk)
    return b"".join(chunks)


def parse_key_index(value: Any) -> int:
    """Parse a caller-supplied key index, defaulting to `0` on bad input."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(value)
    if isinstance(value, str):
        match = _INT_PREFIX.match(value)
        if match:
            return int(match.group(1))
    return 0


def _lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def _classify_command(raw_body: bytes) -> JsonOp:
    # Undecodable or unparsable bodies propagate and surface as PROXY_FATAL.
    data = json.loads(raw_body.decode("utf-8"))
    if not isinstance(data, dict):
        raise InvalidRequest(INVALID_ACTION)

    try:
        command = CommandBody.model_validate(data)
    except ValidationError as exc:
        if any(error["loc"][:1] == ("action",) for error in exc.errors()):
            raise InvalidRequest(INVALID_ACTION) from exc
        raise InvalidRequest("Invalid json payload") from exc

    if command.action not in JSON_ACTIONS:
        raise InvalidRequest(INVALID_ACTION)

    return JsonOp(
        operation=command.action,
        payload=dict(command.payload or {}),
        key_index=parse_key_index(command.apiKeyIndex),
    )


def classify(headers: Mapping[str, str], raw_body: bytes) -> ClassifiedOperation:
    """Map inbound headers and body onto one classified operation.

    Args:
        headers: Inbound header mapping.
        raw_body: Fully drained request body.

    Returns:
        `UploadOp` when `x-action` is `upload`, otherwise `JsonOp` when the
        content type contains `application/json`.

    Raises:
        InvalidRequest: For any other combination, a missing or unknown
            action, or a non-object payload.
        UnicodeDecodeError, json.JSONDecodeError: For a command body that
            is not UTF-8 JSON.
    """
    lowered = _lower_headers(headers)
    content_type = lowered.get("content-type") or ""

    if lowered.get(ACTION_HEADER) == UPLOAD_ACTION:
        return UploadOp(
            payload=raw_body,
            file_name=lowered.get(FILE_NAME_HEADER) or DEFAULT_FILE_NAME,
            content_type=content_type or DEFAULT_UPLOAD_CONTENT_TYPE,
            key_index=parse_key_index(lowered.get(KEY_INDEX_HEADER)),
        )

    if "application/json" in content_type:
        return _classify_command(raw_body)

    raise InvalidRequest("Invalid request format or content type")
