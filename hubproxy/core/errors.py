"""Exception taxonomy for the proxy.

Mapping to inbound HTTP responses (performed by `hubproxy.api.http_api`):
    - `ConfigError` -> 500 `PROXY_FATAL`
    - `InvalidRequest` -> 400, no upstream call attempted

Queue-full and malformed upstream bodies are not exceptions; they are
`hubproxy.core.types` outcome values.
"""


class ProxyError(Exception):
    """Base class for errors raised by proxy components."""


class ConfigError(ProxyError):
    """Key pool is missing or holds no usable secrets."""


class InvalidRequest(ProxyError):
    """Inbound request matches neither the upload nor the JSON command shape."""
