# traefik_registrar/oam/helm.py
"""
Turn a packaged Helm chart into workload definitions + schemas.

The chart is downloaded as a .tgz, every YAML member is parsed, and a
declarative JSONPath pipeline (CrdFilter) picks CRDs and pulls out the
pieces a workload definition needs. Evaluation is delegated to jsonpath-ng.
"""
from __future__ import annotations

import io
import json
import logging
import tarfile
from typing import Any, Dict, List, Optional

import httpx
import yaml
from jsonpath_ng.ext import parse as jsonpath_parse
from pydantic import BaseModel, Field

from traefik_registrar.clients.http_utils import _raise_for_status, retryable_get
from traefik_registrar.errors import ChartError
from traefik_registrar.models import ChartComponents

logger = logging.getLogger("traefik_registrar.oam.helm")

WORKLOAD_TYPE = "pattern.meshery.io/mesh/workload"


class CrdFilter(BaseModel):
    """
    Each filter is a pipeline: the first expression runs against the input,
    every following expression runs against the list of matches so far.
    """
    root_filter: List[str] = Field(default_factory=lambda: ['$[?kind = "CustomResourceDefinition"]'])
    name_filter: List[str] = Field(default_factory=lambda: ["$.spec.names.kind"])
    version_filter: List[str] = Field(default_factory=lambda: ["$.spec.versions[*].name", "$[0]"])
    group_filter: List[str] = Field(default_factory=lambda: ["$.spec.group"])
    spec_filter: List[str] = Field(default_factory=lambda: ["$..openAPIV3Schema.properties.spec", "$[0]"])


def apply_filter(expressions: List[str], data: Any) -> List[Any]:
    values: Any = data
    matches: List[Any] = []
    for i, expr in enumerate(expressions):
        found = jsonpath_parse(expr).find(values)
        matches = [m.value for m in found]
        values = matches
        if not matches and i < len(expressions) - 1:
            return []
    return matches


class ChartFetcher:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    @retryable_get
    async def fetch(self, url: str) -> bytes:
        resp = await self.client.get(url)
        _raise_for_status("helm-chart", resp)
        return resp.content


def extract_manifests(chart: bytes) -> List[Dict[str, Any]]:
    """All YAML mappings found in the chart archive, in archive order."""
    try:
        archive = tarfile.open(fileobj=io.BytesIO(chart), mode="r:*")
    except tarfile.TarError as e:
        raise ChartError(f"not a chart archive: {e}") from e

    docs: List[Dict[str, Any]] = []
    with archive:
        for member in archive.getmembers():
            if not member.isfile() or not member.name.endswith((".yaml", ".yml")):
                continue
            fh = archive.extractfile(member)
            if fh is None:
                continue
            text = fh.read().decode("utf-8", errors="replace")
            try:
                parsed = [d for d in yaml.safe_load_all(text) if isinstance(d, dict)]
            except yaml.YAMLError:
                # go templates under templates/ are not plain YAML
                logger.debug("Skipping unparseable chart file %s", member.name)
                continue
            docs.extend(parsed)
    return docs


def _first(values: List[Any]) -> Optional[Any]:
    return values[0] if values else None


def generate_components(
    manifests: List[Dict[str, Any]],
    crd_filter: CrdFilter,
    *,
    mesh_name: str,
    mesh_version: str,
) -> ChartComponents:
    out = ChartComponents()
    for crd in apply_filter(crd_filter.root_filter, manifests):
        kind = _first(apply_filter(crd_filter.name_filter, crd))
        version = _first(apply_filter(crd_filter.version_filter, crd))
        group = _first(apply_filter(crd_filter.group_filter, crd))
        spec = _first(apply_filter(crd_filter.spec_filter, crd))
        if not (kind and version and group) or not isinstance(spec, dict):
            logger.warning(
                "Skipping CRD %s: missing kind/version/group/spec schema",
                (crd.get("metadata") or {}).get("name", "<unnamed>"),
            )
            continue

        definition = {
            "metadata": {"name": kind},
            "spec": {
                "definitionRef": {"name": f"{str(kind).lower()}.{group}"},
                "metadata": {
                    "@type": WORKLOAD_TYPE,
                    "meshName": mesh_name,
                    "meshVersion": mesh_version,
                    "k8sAPIVersion": f"{group}/{version}",
                    "k8sKind": kind,
                },
            },
        }
        schema = dict(spec)
        schema["title"] = kind

        out.definitions.append(json.dumps(definition))
        out.schemas.append(json.dumps(schema))

    logger.info("Generated %d component(s) from chart for %s %s", len(out.definitions), mesh_name, mesh_version)
    return out
