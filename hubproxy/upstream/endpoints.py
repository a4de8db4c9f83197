"""Fixed upstream endpoint map consumed by `hubproxy.upstream.dispatcher`."""

DEFAULT_BASE_URL = "https://www.runninghub.ai"

UPSTREAM_PATHS = {
    "upload": "/task/openapi/upload",
    "run": "/task/openapi/ai-app/run",
    "status": "/task/openapi/status",
    "outputs": "/task/openapi/outputs",
    "cancel": "/task/openapi/cancel",
}


def build_url(base_url: str, operation: str) -> str:
    """Join the base host and the fixed path for `operation`.

    Raises:
        KeyError: For operations outside the routing table.
    """
    return base_url.rstrip("/") + UPSTREAM_PATHS[operation]
