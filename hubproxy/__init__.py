"""hubproxy: stateless credential-rotating proxy for the RunningHub OpenAPI.

Architectural role:
- `hubproxy.api`: inbound HTTP surface (FastAPI) and caller-side CLI client.
- `hubproxy.core`: request classification and shared outcome/operation types.
- `hubproxy.keys`: secret pool resolution by caller-supplied index.
- `hubproxy.upstream`: routing table and one-shot upstream dispatch.

Package import is side-effect free.
"""

__version__ = "0.3.0"
