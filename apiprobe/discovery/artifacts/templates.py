"""Replayable request templates rendered from endpoint clusters."""

import logging
from typing import List, Optional, Sequence
from urllib.parse import parse_qsl, quote, urlparse

from ..models.traffic import CapturedRequest, EndpointCluster, RequestTemplate
from ..utils.redaction import redact_dynamic_value, redact_header_value

logger = logging.getLogger(__name__)

# Braces stay literal so {{placeholders}} remain usable in replay tools.
_QUERY_SAFE = "!~*'(){}"


def build_template(request: CapturedRequest, cluster: EndpointCluster) -> RequestTemplate:
    """Render one captured request as a redacted template for its cluster."""
    path_template = cluster.normalized_path
    origin = ''

    try:
        parsed = urlparse(request.url)
    except ValueError:
        parsed = None

    if parsed is not None and parsed.scheme and parsed.netloc:
        origin = f"{parsed.scheme}://{parsed.netloc}"
        params = [
            f"{quote(key, safe=_QUERY_SAFE)}={quote(redact_dynamic_value(value) or '', safe=_QUERY_SAFE)}"
            for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        ]
        if params:
            path_template = f"{path_template}?{'&'.join(params)}"

    headers = {
        name: redact_header_value(name, value) or ''
        for name, value in request.request_headers.items()
    }

    return RequestTemplate(
        cluster_id=cluster.id,
        method=cluster.method,
        normalized_path=cluster.normalized_path,
        url_template=f"{origin}{path_template}",
        path_template=path_template,
        headers=headers,
        body_template=redact_dynamic_value(request.request_body) if request.request_body else None,
        graphql_operation=cluster.graphql_operation,
    )


def build_templates(clusters: Sequence[EndpointCluster]) -> List[RequestTemplate]:
    """Render a template per cluster from its representative sample."""
    templates = []
    for cluster in clusters:
        sample: Optional[CapturedRequest] = cluster.sample_request
        if sample is None:
            logger.debug(f"Cluster {cluster.id} has no sample request, no template rendered")
            continue
        templates.append(build_template(sample, cluster))
    return templates
