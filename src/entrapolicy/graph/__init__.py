"""
Directory service client.

Typed access to the REST endpoints the policy engine consumes.
"""

from entrapolicy.graph.client import (
    GraphClient,
    GraphError,
    GraphRequestError,
    GraphResponseError,
    GraphStatusError,
)

__all__ = [
    "GraphClient",
    "GraphError",
    "GraphRequestError",
    "GraphResponseError",
    "GraphStatusError",
]
