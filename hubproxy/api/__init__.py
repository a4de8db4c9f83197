"""hubproxy API adapter package.

Architectural role:
- Defines the inbound HTTP boundary (`http_api`) and its server launcher
  (`main`).
- Ships a caller-side CLI client (`cli`) that owns queue-full retries.

Scope:
- Transport-level validation and response shaping only.
- Key resolution and upstream calls are delegated to `hubproxy.keys` and
  `hubproxy.upstream`.
"""
