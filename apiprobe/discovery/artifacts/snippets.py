"""Per-endpoint curl and Python replay snippets."""

import json
import re

from ..models.traffic import RequestTemplate

_FILE_UNSAFE_RE = re.compile(r'[^a-zA-Z0-9._-]+')
MAX_FILE_STEM = 120


def shell_quote(value: str) -> str:
    """Single-quote a value for POSIX shells."""
    return "'" + value.replace("'", "'\\''") + "'"


def build_curl_command(template: RequestTemplate) -> str:
    lines = [f"curl -X {template.method} {shell_quote(template.url_template)}"]
    for key, value in template.headers.items():
        lines.append(f"  -H {shell_quote(f'{key}: {value}')}")
    if template.body_template:
        lines.append(f"  --data {shell_quote(template.body_template)}")
    return ' \\\n'.join(lines)


def build_python_snippet(template: RequestTemplate) -> str:
    """Render a standalone ``requests`` script replaying the template.

    The body is embedded as a string literal since redacted bodies are not
    necessarily valid JSON.
    """
    payload = repr(template.body_template) if template.body_template else 'None'
    return '\n'.join([
        'import requests',
        '',
        f'url = {template.url_template!r}',
        f'headers = {json.dumps(template.headers, indent=4)}',
        f'payload = {payload}',
        '',
        f'response = requests.request({template.method!r}, url, headers=headers, data=payload)',
        'print(response.status_code)',
        'print(response.text)',
        '',
    ])


def file_safe(value: str) -> str:
    return _FILE_UNSAFE_RE.sub('_', value)[:MAX_FILE_STEM]


def snippet_basename(template: RequestTemplate) -> str:
    return file_safe(f"{template.method}_{template.normalized_path}")
