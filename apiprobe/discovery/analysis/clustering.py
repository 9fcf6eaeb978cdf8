"""Clustering of captured requests into inferred endpoint definitions.

Requests are grouped by (method, normalized path, content type, GraphQL
operation). Each cluster carries its observation count, the status codes
seen, a confidence score and a representative sample request.
"""

import json
import logging
import math
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.traffic import CapturedRequest, ClusterSample, EndpointCluster
from ..utils.path_normalizer import normalize_url_path

logger = logging.getLogger(__name__)

CONFIDENCE_FLOOR = 0.35
CONFIDENCE_LOG_WEIGHT = 0.35
# Largest count for which the log curve is still below 1.0.
CONFIDENCE_SATURATION_COUNT = math.ceil(10 ** ((1.0 - CONFIDENCE_FLOOR) / CONFIDENCE_LOG_WEIGHT)) - 2

_GRAPHQL_OPERATION_RE = re.compile(r'\b(query|mutation|subscription)\s+([A-Za-z0-9_]+)')

ClusterKey = Tuple[str, str, str, str]


def cluster_confidence(count: int) -> float:
    """Confidence that a cluster is a real endpoint, from its observation count.

    Equals ``0.35 + 0.35 * log10(count + 1)`` while that is below 1.0. Past
    CONFIDENCE_SATURATION_COUNT the remaining gap to 1.0 shrinks in
    proportion to the count, so confidence still increases with every
    observation and never reaches 1.0.
    """
    count = max(count, 0)
    if count <= CONFIDENCE_SATURATION_COUNT:
        return CONFIDENCE_FLOOR + CONFIDENCE_LOG_WEIGHT * math.log10(count + 1)

    saturated = CONFIDENCE_FLOOR + CONFIDENCE_LOG_WEIGHT * math.log10(CONFIDENCE_SATURATION_COUNT + 1)
    return 1.0 - (1.0 - saturated) * (CONFIDENCE_SATURATION_COUNT + 1) / (count + 1)


def detect_graphql_operation(request: CapturedRequest) -> Optional[str]:
    """Read the GraphQL operation name from a JSON request body."""
    body = request.request_body
    if not body:
        return None

    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None

    operation_name = parsed.get('operationName')
    if isinstance(operation_name, str) and operation_name:
        return operation_name

    query = parsed.get('query')
    if isinstance(query, str):
        match = _GRAPHQL_OPERATION_RE.search(query)
        if match:
            return match.group(2)
    return None


def cluster_key_for(request: CapturedRequest) -> ClusterKey:
    return (
        request.method.upper(),
        normalize_url_path(request.url),
        request.header('content-type') or 'unknown',
        detect_graphql_operation(request) or '-',
    )


def format_cluster_key(key: ClusterKey) -> str:
    return ' | '.join(key)


class _ClusterBuilder:
    def __init__(self, cluster_id: str, key: ClusterKey, sample: CapturedRequest):
        self.cluster_id = cluster_id
        self.key = key
        self.sample = sample
        self.count = 0
        self.statuses = set()

    def add(self, request: CapturedRequest) -> None:
        self.count += 1
        if request.status:
            self.statuses.add(request.status)

    def build(self) -> EndpointCluster:
        method, normalized_path, content_type, operation = self.key
        cluster = EndpointCluster(
            id=self.cluster_id,
            key=format_cluster_key(self.key),
            method=method,
            normalized_path=normalized_path,
            content_type=content_type,
            graphql_operation=None if operation == '-' else operation,
            host=self.sample.host,
            count=self.count,
            statuses=sorted(self.statuses),
            confidence=cluster_confidence(self.count),
            has_request_body=bool(self.sample.request_body),
            has_response_body=bool(self.sample.response_body),
            sample=ClusterSample(
                url=self.sample.url,
                request_fingerprint=self.sample.request_fingerprint,
            ),
        )
        cluster._sample_request = self.sample
        return cluster


def cluster_requests(requests: Sequence[CapturedRequest]) -> List[EndpointCluster]:
    """Partition requests into endpoint clusters, largest first.

    Every request lands in exactly one cluster. Cluster ids follow
    first-seen order; the first request of a cluster is its sample.
    """
    builders: Dict[ClusterKey, _ClusterBuilder] = {}

    for request in requests:
        key = cluster_key_for(request)
        builder = builders.get(key)
        if builder is None:
            builder = _ClusterBuilder(f"cluster-{len(builders) + 1}", key, request)
            builders[key] = builder
        builder.add(request)

    clusters = [builder.build() for builder in builders.values()]
    clusters.sort(key=lambda cluster: cluster.count, reverse=True)

    logger.debug(f"Clustered {len(requests)} requests into {len(clusters)} endpoints")
    return clusters
