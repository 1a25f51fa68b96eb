# traefik_registrar/oam/register.py
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from traefik_registrar.clients.http_utils import new_http_client
from traefik_registrar.clients.registrant import Registrant
from traefik_registrar.clients.release_index import ReleaseIndexClient
from traefik_registrar.config import Settings
from traefik_registrar.errors import DefinitionParseError
from traefik_registrar.models import (
    ADAPTER_NAME_METADATA_KEY,
    COMPONENT_CATEGORY_METADATA_KEY,
    RegistrantDefinitionPath,
    RegistrantEntry,
    RegistrationReport,
)
from traefik_registrar.oam.helm import ChartFetcher, CrdFilter, extract_manifests, generate_components
from traefik_registrar.oam.loader import load_definition_paths

logger = logging.getLogger("traefik_registrar.oam.register")

WORKLOAD_API_VERSION = "core.oam.dev/v1alpha1"
WORKLOAD_KIND = "WorkloadDefinition"


def workload_url(runtime: str) -> str:
    return f"{runtime.rstrip('/')}/api/oam/workload"


def trait_url(runtime: str) -> str:
    return f"{runtime.rstrip('/')}/api/oam/trait"


def _path_items(settings: Settings, root: Path, host: str, *, categorise: bool) -> List[RegistrantDefinitionPath]:
    items: List[RegistrantDefinitionPath] = []
    for path_set in load_definition_paths(root, settings.schema_suffix):
        metadata = {ADAPTER_NAME_METADATA_KEY: settings.adapter_name}
        if categorise and path_set.name.endswith("addon"):
            metadata[COMPONENT_CATEGORY_METADATA_KEY] = "addon"
        items.append(
            RegistrantDefinitionPath(
                definition_path=path_set.definition_path,
                schema_path=path_set.schema_path,
                host=host,
                metadata=metadata,
            )
        )
    return items


async def register_workloads(
    settings: Settings,
    runtime: str,
    host: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """
    Register every workload definition under templates/oam/workloads.
    POST {runtime}/api/oam/workload
    """
    items = _path_items(settings, settings.workloads_path, host, categorise=True)
    return await Registrant.from_settings(settings, items, workload_url(runtime), client=client).register()


async def register_traits(
    settings: Settings,
    runtime: str,
    host: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """
    Register every trait definition under templates/oam/traits.
    POST {runtime}/api/oam/trait
    """
    items = _path_items(settings, settings.traits_path, host, categorise=False)
    return await Registrant.from_settings(settings, items, trait_url(runtime), client=client).register()


async def register_workloads_dynamically(
    settings: Settings,
    runtime: str,
    host: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    crd_filter: Optional[CrdFilter] = None,
) -> int:
    """
    Resolve the newest mesh release that has a chart, pull the chart and
    register a workload per CRD it ships.
    """
    if client is None:
        async with new_http_client(settings) as owned:
            return await register_workloads_dynamically(
                settings, runtime, host, client=owned, crd_filter=crd_filter
            )

    release = await ReleaseIndexClient(settings, client).resolve_release(settings.mesh_version or None)
    chart_url = settings.chart_url_template.format(chart_version=release.chart_version)
    chart = await ChartFetcher(client).fetch(chart_url)
    components = generate_components(
        extract_manifests(chart),
        crd_filter or CrdFilter(),
        mesh_name=settings.mesh_name,
        mesh_version=release.tag,
    )

    entries: List[RegistrantEntry] = []
    for i, raw in enumerate(components.definitions):
        try:
            definition = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DefinitionParseError(f"{chart_url}#{i}", str(e)) from e
        if not isinstance(definition, dict):
            raise DefinitionParseError(f"{chart_url}#{i}", "expected a JSON object")
        definition["apiVersion"] = WORKLOAD_API_VERSION
        definition["kind"] = WORKLOAD_KIND
        entries.append(
            RegistrantEntry(
                definition=definition,
                schema_=components.schemas[i],
                host=host,
                metadata={ADAPTER_NAME_METADATA_KEY: settings.adapter_name},
            )
        )

    return await Registrant.from_settings(settings, entries, workload_url(runtime), client=client).register()


# ─────────────────────────────────────────────────────────────
# Background passes
# ─────────────────────────────────────────────────────────────

RegistrationObserver = Callable[[RegistrationReport], None]


class CapabilityRegistrar:
    """
    Runs the static (templates) and dynamic (chart) registration passes.

    Failures are logged and reported, never raised: a failed pass simply
    waits for the next trigger. Observers get one RegistrationReport per
    pass; the newest report per pass is also kept in `last_reports`.
    """

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self._client = client
        self._observers: List[RegistrationObserver] = []
        self.last_reports: Dict[str, RegistrationReport] = {}

    def add_observer(self, observer: RegistrationObserver) -> None:
        self._observers.append(observer)

    @property
    def runtime(self) -> str:
        return self.settings.meshery_server

    @property
    def host(self) -> str:
        return self.settings.advertised_host

    async def run_static_pass(self) -> List[RegistrationReport]:
        reports = [
            await self._run("workloads", register_workloads),
            await self._run("traits", register_traits),
        ]
        return reports

    async def run_dynamic_pass(self) -> RegistrationReport:
        logger.info("Registering latest workload components")
        report = await self._run("dynamic-workloads", register_workloads_dynamically)
        if report.ok:
            logger.info("Latest workload components successfully registered.")
        return report

    async def _run(self, pass_name: str, fn: Callable[..., Awaitable[int]]) -> RegistrationReport:
        report = RegistrationReport(pass_name=pass_name, ok=False)
        try:
            report.registered = await fn(self.settings, self.runtime, self.host, client=self._client)
            report.ok = True
        except Exception as e:
            # registration is best-effort; the next trigger tries again
            report.error = str(e)
            logger.warning("Registration pass %s failed: %s", pass_name, e)
        report.finished_at = datetime.now(timezone.utc)
        self._publish(report)
        return report

    def _publish(self, report: RegistrationReport) -> None:
        self.last_reports[report.pass_name] = report
        for observer in list(self._observers):
            try:
                observer(report)
            except Exception:
                logger.warning("Registration observer failed", exc_info=True)
