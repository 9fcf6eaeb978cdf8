"""Draft OpenAPI document and coverage report from endpoint clusters."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models.traffic import EndpointCluster

OPENAPI_VERSION = "3.0.3"
VENDOR_PREFIX = "x-apiprobe"

_PLACEHOLDER_RE = re.compile(r'\{([^}]+)\}')
_OPERATION_ID_RE = re.compile(r'[{}/]')

def _json_content() -> Dict[str, Any]:
    # Fresh per use; shared dicts would be dumped as YAML aliases.
    return {
        "application/json": {
            "schema": {"type": "object", "additionalProperties": True},
        },
    }


def number_path_parameters(normalized_path: str) -> Tuple[str, List[str]]:
    """Give repeated placeholders unique names (``{id}`` then ``{id2}``).

    Returns:
        The rewritten path and its parameter names in path order
    """
    seen: Dict[str, int] = {}
    names: List[str] = []

    def rename(match: re.Match) -> str:
        base = match.group(1)
        seen[base] = seen.get(base, 0) + 1
        name = base if seen[base] == 1 else f"{base}{seen[base]}"
        names.append(name)
        return '{' + name + '}'

    return _PLACEHOLDER_RE.sub(rename, normalized_path), names


def build_operation(cluster: EndpointCluster, parameter_names: List[str]) -> Dict[str, Any]:
    method = cluster.method.lower()
    operation: Dict[str, Any] = {
        "summary": f"{cluster.method} {cluster.normalized_path}",
        "operationId": f"{method}_{_OPERATION_ID_RE.sub('_', cluster.normalized_path)}",
        "parameters": [
            {
                "name": name,
                "in": "path",
                "required": True,
                "schema": {"type": "string"},
            }
            for name in parameter_names
        ],
    }
    if cluster.has_request_body:
        operation["requestBody"] = {"required": False, "content": _json_content()}
    operation["responses"] = {
        "200": {"description": "Observed success response", "content": _json_content()},
        "default": {"description": "Observed response"},
    }
    operation[f"{VENDOR_PREFIX}-observedCount"] = cluster.count
    operation[f"{VENDOR_PREFIX}-confidence"] = cluster.confidence
    if cluster.graphql_operation:
        operation[f"{VENDOR_PREFIX}-graphqlOperation"] = cluster.graphql_operation
    return operation


def build_openapi(clusters: Sequence[EndpointCluster], server_url: Optional[str] = None) -> Dict[str, Any]:
    """Build an OpenAPI 3 document with one operation per cluster.

    Clusters are expected largest first; when two clusters share a method
    and path (different content type or GraphQL operation), the first one
    is documented and the rest are listed by :func:`collapsed_clusters`.
    """
    paths: Dict[str, Dict[str, Any]] = {}
    for cluster in clusters:
        path, parameter_names = number_path_parameters(cluster.normalized_path)
        path_item = paths.setdefault(path, {})
        method = cluster.method.lower()
        if method in path_item:
            continue
        path_item[method] = build_operation(cluster, parameter_names)

    return {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": "Inferred API",
            "version": "0.1.0",
            "description": "Draft OpenAPI inferred from autonomous browser discovery.",
        },
        "servers": [{"url": server_url}] if server_url else [],
        "paths": paths,
    }


def collapsed_clusters(clusters: Sequence[EndpointCluster]) -> List[str]:
    """Keys of clusters shadowed by an earlier cluster on the same method and path."""
    seen = set()
    collapsed = []
    for cluster in clusters:
        slot = (cluster.method, cluster.normalized_path)
        if slot in seen:
            collapsed.append(cluster.key)
        seen.add(slot)
    return collapsed


def build_openapi_report(clusters: Sequence[EndpointCluster]) -> Dict[str, Any]:
    """Coverage and confidence report accompanying the OpenAPI draft."""
    average = 0.0
    if clusters:
        average = round(sum(cluster.confidence for cluster in clusters) / len(clusters), 3)

    return {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "totalClusters": len(clusters),
        "averageConfidence": average,
        "unresolved": {
            "missingSampleBodies": [
                cluster.key for cluster in clusters
                if not cluster.has_request_body and not cluster.has_response_body
            ],
            "collapsedClusters": collapsed_clusters(clusters),
        },
        "clusterConfidence": [
            {
                "id": cluster.id,
                "key": cluster.key,
                "confidence": cluster.confidence,
                "count": cluster.count,
            }
            for cluster in clusters
        ],
    }
