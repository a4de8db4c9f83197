"""Upstream adapter package.

Scope:
    Fixed routing table for the RunningHub OpenAPI and the one-shot
    dispatcher that sends a classified operation and interprets the reply.

Non-goals:
    - No retries or key rotation; those decisions belong to the caller.
    - No interpretation of task payloads beyond the queue-full signal.
"""
