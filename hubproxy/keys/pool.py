"""Secret key pool resolved by caller-supplied index.

Architectural role:
    Keeps the RunningHub API secrets server-side. Callers only ever send an
    index; this module maps it onto the configured pool with wrap-around.

Rotation model:
    Rotation is a pure function of the requested index. There is no running
    cursor, lock, or shared counter, so concurrent requests need no
    coordination.

Determinism:
    The same index always yields the same key for a fixed configuration.

Failure behavior:
    An unset or empty pool raises `ConfigError` on every call. Failures are
    never cached.

Security considerations:
    Log lines carry indices only, never key material.
"""

import logging
import os

from hubproxy.core.errors import ConfigError


logger = logging.getLogger(__name__)

DEFAULT_KEYS_ENV = "RUNNINGHUB_API_KEYS"


def parse_keys(raw: str | None) -> list[str]:
    """Split a comma-separated secret list, trimming and dropping empties.

    Raises:
        ConfigError: If `raw` is `None` or contains no usable entries.
    """
    if raw is None:
        raise ConfigError(f"{DEFAULT_KEYS_ENV} is not set.")

    keys = [item.strip() for item in raw.split(",") if item.strip()]
    if not keys:
        raise ConfigError(f"{DEFAULT_KEYS_ENV} is set but contains no valid keys.")
    return keys


class KeyPool:
    """Read-only pool of upstream secrets."""

    def __init__(self, raw: str | None) -> None:
        self._raw = raw

    @classmethod
    def from_env(cls, var_name: str = DEFAULT_KEYS_ENV) -> "KeyPool":
        """Build a pool from one environment variable read at call time."""
        return cls(os.getenv(var_name))

    @property
    def size(self) -> int:
        return len(parse_keys(self._raw))

    def resolve_key(self, index: int) -> str:
        """Return the secret at `index` modulo the pool size.

        Args:
            index: Requested index; negative values and values beyond the
                pool size wrap around.

        Returns:
            Secret string at the effective index in `[0, size)`.

        Raises:
            ConfigError: If the pool is unset or empty.
        """
        keys = parse_keys(self._raw)
        # Floor modulo keeps negative indices in range.
        effective = index % len(keys)
        logger.info("Using key at index %d (effective %d after wrap-around)", index, effective)
        return keys[effective]
