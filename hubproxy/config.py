"""Process configuration for the proxy.

Architectural role:
    Centralizes environment lookups so the rest of the package receives an
    explicit, immutable `ProxyConfig` value. Tests construct it directly
    instead of mutating the environment.

Relevant environment variables:
    - `RUNNINGHUB_API_KEYS`: comma-separated secret pool.
    - `RUNNINGHUB_BASE_URL`: upstream host override.
    - `UPSTREAM_TIMEOUT_SECONDS`: optional outbound timeout; unset means none.
    - `PROXY_HOST`, `PROXY_PORT`: bind address for `hubproxy.api.main`.
    - `LOG_LEVEL`: root log level.
    - `DEBUG`: `"true"` enables debug logging.

Failure behavior:
    A missing key pool is not an error here. It surfaces as `ConfigError`
    on the first request that needs a key.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from hubproxy.keys.pool import DEFAULT_KEYS_ENV
from hubproxy.upstream.endpoints import DEFAULT_BASE_URL


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class ProxyConfig:
    """Immutable runtime configuration."""

    api_keys: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float | None = None
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """Read configuration from the environment, honoring a local `.env`."""
        load_dotenv()
        debug = os.getenv("DEBUG") == "true"
        return cls(
            api_keys=os.getenv(DEFAULT_KEYS_ENV),
            base_url=os.getenv("RUNNINGHUB_BASE_URL", DEFAULT_BASE_URL),
            timeout_seconds=_optional_float(os.getenv("UPSTREAM_TIMEOUT_SECONDS")),
            host=os.getenv("PROXY_HOST", "0.0.0.0"),
            port=int(os.getenv("PROXY_PORT", "8000")),
            log_level="DEBUG" if debug else os.getenv("LOG_LEVEL", "INFO").upper(),
            debug=debug,
        )
