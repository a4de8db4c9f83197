"""One-shot upstream dispatcher for classified operations.

Processing flow:
    1. Select the fixed upstream URL for the operation.
    2. Inject the resolved secret server-side (multipart field or JSON key).
    3. Send exactly one POST through the shared `httpx.AsyncClient`.
    4. Interpret the reply into `Success`, `QueueFull` or `UpstreamMalformed`.

Retry behavior:
    None. A queue-full reply is returned to the caller, who decides whether
    to retry with another key index.

Timeouts:
    The dispatcher imposes none of its own. Any timeout comes from the
    client passed in (see `ProxyConfig.timeout_seconds`).

Security considerations:
    The secret never appears in log lines.
"""

import json
import logging
from typing import Any

import httpx

from hubproxy.core.types import (
    ClassifiedOperation,
    JsonOp,
    QueueFull,
    Success,
    UploadOp,
    UpstreamMalformed,
    UpstreamOutcome,
)
from hubproxy.upstream.endpoints import DEFAULT_BASE_URL, build_url


logger = logging.getLogger(__name__)

QUEUE_MAXED = "TASK_QUEUE_MAXED"
QUEUE_FULL_CODES = (421, "421", QUEUE_MAXED)


def is_queue_full(body: Any) -> bool:
    """Return True when an upstream body carries the queue-full signal."""
    if not isinstance(body, dict):
        return False

    code = body.get("code")
    if not isinstance(code, bool) and code in QUEUE_FULL_CODES:
        return True

    msg = body.get("msg")
    return isinstance(msg, str) and QUEUE_MAXED in msg


def _reject_constant(name: str):
    # NaN and Infinity are not JSON and cannot be re-encoded in the reply.
    raise ValueError(f"Non-standard JSON constant: {name}")


def interpret_response(status_code: int, reason_phrase: str, content: bytes) -> UpstreamOutcome:
    """Turn one upstream HTTP reply into a normalized outcome.

    Args:
        status_code: Upstream HTTP status.
        reason_phrase: Upstream status text.
        content: Raw upstream body.

    Returns:
        - `UpstreamMalformed` when the body is not strict JSON (including
          `NaN`/`Infinity` constants).
        - `QueueFull` when the parsed body signals a saturated queue.
        - `Success` otherwise, including upstream error codes other than 421.
    """
    try:
        body = json.loads(content, parse_constant=_reject_constant)
    except ValueError:
        logger.error("Could not parse JSON from RunningHub: %s %s", status_code, reason_phrase)
        return UpstreamMalformed(status=status_code, status_text=reason_phrase)

    if is_queue_full(body):
        logger.warning("RunningHub reported TASK_QUEUE_MAXED; caller should switch key")
        return QueueFull(body=body)

    return Success(body=body)


class UpstreamDispatcher:
    """Build and send the single upstream call for a classified operation."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL) -> None:
        self.client = client
        self.base_url = base_url

    async def dispatch(self, op: ClassifiedOperation, key: str) -> UpstreamOutcome:
        """Send `op` upstream with `key` injected and interpret the reply.

        Raises:
            httpx.HTTPError: Transport failures reaching upstream propagate.
            TypeError: For values that are not a classified operation.
        """
        if isinstance(op, UploadOp):
            response = await self._send_upload(op, key)
        elif isinstance(op, JsonOp):
            response = await self._send_command(op, key)
        else:
            raise TypeError(f"Unsupported operation: {op!r}")

        return interpret_response(response.status_code, response.reason_phrase, response.content)

    async def _send_upload(self, op: UploadOp, key: str) -> httpx.Response:
        url = build_url(self.base_url, "upload")
        logger.info("Forwarding upload %r (%d bytes) to %s", op.file_name, len(op.payload), url)
        return await self.client.post(
            url,
            files={"file": (op.file_name, op.payload, op.content_type)},
            data={"apiKey": key, "fileType": "image"},
        )

    async def _send_command(self, op: JsonOp, key: str) -> httpx.Response:
        url = build_url(self.base_url, op.operation)
        logger.info("Forwarding %s command to %s", op.operation, url)
        # Server-side key wins over any client-supplied apiKey.
        body = {**op.payload, "apiKey": key}
        return await self.client.post(
            url,
            json=body,
            headers={"Content-Type": "application/json"},
        )
