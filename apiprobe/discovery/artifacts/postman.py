"""Postman collection (v2.1) rendering of request templates."""

from typing import Any, Dict, Optional, Sequence

from ..models.traffic import RequestTemplate

POSTMAN_SCHEMA = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"
DEFAULT_BASE_URL = "https://example.com"


def build_postman_item(template: RequestTemplate) -> Dict[str, Any]:
    request: Dict[str, Any] = {
        "method": template.method,
        "header": [{"key": key, "value": value} for key, value in template.headers.items()],
        "url": {
            "raw": f"{{{{baseUrl}}}}{template.path_template}",
            "host": ["{{baseUrl}}"],
            "path": template.path_template.lstrip('/').split('/'),
        },
    }
    if template.body_template:
        request["body"] = {
            "mode": "raw",
            "raw": template.body_template,
            "options": {"raw": {"language": "json"}},
        }
    return {
        "name": f"{template.method} {template.normalized_path}",
        "request": request,
    }


def build_postman_collection(
    templates: Sequence[RequestTemplate],
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a collection with one request per template and a baseUrl variable."""
    return {
        "info": {
            "name": "API Discovery Replay",
            "schema": POSTMAN_SCHEMA,
        },
        "variable": [
            {"key": "baseUrl", "value": base_url or DEFAULT_BASE_URL},
        ],
        "item": [build_postman_item(template) for template in templates],
    }
