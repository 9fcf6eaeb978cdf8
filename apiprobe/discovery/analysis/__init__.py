"""Traffic analysis: endpoint clustering and auth dependency inference."""

from .clustering import cluster_confidence, cluster_requests, detect_graphql_operation
from .dependencies import infer_dependencies, looks_like_auth_request

__all__ = [
    'cluster_confidence',
    'cluster_requests',
    'detect_graphql_operation',
    'infer_dependencies',
    'looks_like_auth_request',
]
