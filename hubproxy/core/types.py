"""Per-request value types shared by classifier, dispatcher and API layer.

Architectural role:
    Defines the two tagged unions that flow through one request:
    `ClassifiedOperation` (what the caller asked for) and `UpstreamOutcome`
    (what upstream answered). Nothing here persists across requests.

Control-flow interaction:
    `classifier.classify` produces an operation, `dispatcher.dispatch`
    consumes it and returns an outcome, and `http_api` maps the outcome
    variant to an inbound status code.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel


JSON_ACTIONS = frozenset({"run", "status", "outputs", "cancel"})
UPLOAD_ACTION = "upload"


@dataclass(frozen=True)
class UploadOp:
    """Raw binary upload forwarded as a multipart form.

    Attributes:
        payload: Fully drained request body.
        file_name: Name attached to the multipart `file` field.
        content_type: MIME type of the uploaded binary.
        key_index: Caller-requested key pool index.
    """

    payload: bytes
    file_name: str
    content_type: str
    key_index: int = 0


@dataclass(frozen=True)
class JsonOp:
    """JSON command forwarded with the secret merged into its payload."""

    operation: str
    payload: dict[str, Any] = field(default_factory=dict)
    key_index: int = 0


ClassifiedOperation = Union[UploadOp, JsonOp]


@dataclass(frozen=True)
class Success:
    """Upstream JSON body to forward verbatim with status 200."""

    body: Any


@dataclass(frozen=True)
class QueueFull:
    """Upstream signalled a saturated task queue for the presented key.

    Forwarded with status 200 so the caller can read `code` and retry with
    another key index.
    """

    body: Any


@dataclass(frozen=True)
class UpstreamMalformed:
    """Upstream answered with a body that is not JSON."""

    status: int
    status_text: str


UpstreamOutcome = Union[Success, QueueFull, UpstreamMalformed]


class CommandBody(BaseModel):
    """Schema of the inbound JSON command body.

    `action` is checked against `JSON_ACTIONS` by the classifier so an
    unknown value yields a dedicated error message. `apiKeyIndex` is kept
    untyped and parsed permissively.
    """

    action: str
    payload: dict[str, Any] | None = None
    apiKeyIndex: Any = None
