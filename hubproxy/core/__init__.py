"""Core request-shaping package.

Composition:
    - `errors`: proxy exception taxonomy.
    - `types`: classified operation and upstream outcome value types.
    - `classifier`: inbound request shape detection.

Determinism:
    Everything in this package is pure apart from draining the inbound body
    stream in `classifier.read_raw_body`.
"""
