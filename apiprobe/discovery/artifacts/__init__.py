"""Replay artifact builders and the artifact writer."""

from .templates import build_template, build_templates
from .openapi import build_openapi, build_openapi_report, number_path_parameters
from .postman import build_postman_collection
from .snippets import build_curl_command, build_python_snippet, file_safe
from .writer import ArtifactWriter

__all__ = [
    'build_template',
    'build_templates',
    'build_openapi',
    'build_openapi_report',
    'number_path_parameters',
    'build_postman_collection',
    'build_curl_command',
    'build_python_snippet',
    'file_safe',
    'ArtifactWriter',
]
