"""Persistence of run artifacts to the run's output directory.

All artifacts are written in one pass at the very end of a run; nothing is
streamed to disk while the run is still exploring or analyzing.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import aiofiles
import yaml

from ..models.run import ArtifactPaths, RunSummary
from ..models.traffic import CapturedRequest, DependencyReport, EndpointCluster, RequestTemplate
from .snippets import build_curl_command, build_python_snippet, snippet_basename

logger = logging.getLogger(__name__)


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2) + '\n'


def _unique_basenames(templates: Sequence[RequestTemplate]) -> List[str]:
    """File stems per template, suffixed with the cluster id on collision."""
    used = set()
    names = []
    for template in templates:
        name = snippet_basename(template)
        if name in used:
            name = f"{name}_{template.cluster_id}"
        used.add(name)
        names.append(name)
    return names


class ArtifactWriter:
    """Writes every artifact of one discovery run."""

    def __init__(self, paths: ArtifactPaths):
        self.paths = paths

    async def _write_text(self, path: Path, content: str) -> None:
        async with aiofiles.open(path, 'w', encoding='utf-8') as f:
            await f.write(content)

    async def write(
        self,
        summary: RunSummary,
        requests: Sequence[CapturedRequest],
        clusters: Sequence[EndpointCluster],
        dependencies: DependencyReport,
        templates: Sequence[RequestTemplate],
        postman_collection: Dict[str, Any],
        openapi_spec: Dict[str, Any],
        openapi_report: Dict[str, Any],
    ) -> None:
        curl_dir = Path(self.paths.curl_dir)
        python_dir = Path(self.paths.python_dir)
        curl_dir.mkdir(parents=True, exist_ok=True)
        python_dir.mkdir(parents=True, exist_ok=True)

        await self._write_text(Path(self.paths.summary), _dump_json(summary.to_json_dict()))

        request_lines = ''.join(json.dumps(request.to_record()) + '\n' for request in requests)
        await self._write_text(Path(self.paths.requests), request_lines)

        await self._write_text(
            Path(self.paths.endpoint_clusters),
            _dump_json([cluster.model_dump(mode='json', by_alias=True) for cluster in clusters]),
        )
        await self._write_text(
            Path(self.paths.dependencies),
            _dump_json(dependencies.model_dump(mode='json', by_alias=True)),
        )
        await self._write_text(
            Path(self.paths.templates),
            _dump_json([template.model_dump(mode='json', by_alias=True, exclude_none=True) for template in templates]),
        )
        await self._write_text(Path(self.paths.postman_collection), _dump_json(postman_collection))

        for template, basename in zip(templates, _unique_basenames(templates)):
            await self._write_text(curl_dir / f"{basename}.sh", build_curl_command(template) + '\n')
            await self._write_text(python_dir / f"{basename}.py", build_python_snippet(template))

        await self._write_text(
            Path(self.paths.openapi),
            yaml.safe_dump(openapi_spec, sort_keys=False, allow_unicode=True),
        )
        await self._write_text(Path(self.paths.openapi_report), _dump_json(openapi_report))

        logger.info(f"Wrote discovery artifacts to {self.paths.output_dir}")
