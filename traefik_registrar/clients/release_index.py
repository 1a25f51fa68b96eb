# traefik_registrar/clients/release_index.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
import yaml

from traefik_registrar.config import Settings
from traefik_registrar.clients.http_utils import ServiceClientError, _raise_for_status, retryable_get
from traefik_registrar.errors import ReleaseNotFoundError
from traefik_registrar.models import GitHubRelease, ReleaseVersion

logger = logging.getLogger("traefik_registrar.clients.release_index")


def _strip_v(version: str) -> str:
    v = (version or "").strip()
    return v[1:] if v[:1] in ("v", "V") else v


class ReleaseIndexClient:
    """
    Thin async client over the two indexes used to pick a chart:
      - GitHub releases of the mesh project (newest first)
      - the Helm repository index.yaml (chart version <-> appVersion)
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self.settings = settings
        self.client = client

    # --------- GitHub releases --------- #

    @retryable_get
    async def get_latest_releases(self, limit: int) -> List[GitHubRelease]:
        """
        GET {releases_url}?per_page={limit}
        Drafts and prereleases are never returned; order is preserved (most
        recent first).
        """
        resp = await self.client.get(
            self.settings.releases_url,
            params={"per_page": limit},
            headers={"Accept": "application/vnd.github+json"},
        )
        _raise_for_status("github-releases", resp)
        releases = [GitHubRelease.model_validate(r) for r in resp.json()]
        return [r for r in releases if not (r.draft or r.prerelease)][:limit]

    # --------- Helm index --------- #

    @retryable_get
    async def get_chart_index(self) -> Dict[str, Any]:
        """
        GET {helm_repo_url}/index.yaml
        """
        url = f"{self.settings.helm_repo_url.rstrip('/')}/index.yaml"
        resp = await self.client.get(url)
        _raise_for_status("helm-index", resp)
        return yaml.safe_load(resp.text) or {}

    async def chart_version_for(self, app_version: str, *, index: Optional[Dict[str, Any]] = None) -> str:
        index = index if index is not None else await self.get_chart_index()
        chart = self.settings.helm_chart_name
        wanted = _strip_v(app_version)
        for entry in (index.get("entries") or {}).get(chart) or []:
            if _strip_v(str(entry.get("appVersion", ""))) == wanted:
                return str(entry["version"])
        raise ReleaseNotFoundError(f"no {chart} chart in {self.settings.helm_repo_url} for app version {app_version}")

    # --------- Resolution --------- #

    async def resolve_release(self, desired: Optional[str] = None, *, limit: Optional[int] = None) -> ReleaseVersion:
        """
        First release (newest first) whose tag has a chart in the Helm index.
        With `desired`, only that tag is considered.
        """
        limit = limit or self.settings.release_lookback
        if desired:
            candidates = [desired]
        else:
            try:
                candidates = [r.tag_name for r in await self.get_latest_releases(limit)]
            except (ServiceClientError, httpx.HTTPError, ValueError) as e:
                raise ReleaseNotFoundError(f"Could not get latest stable release: {e}") from e

        index = await self.get_chart_index()
        for tag in candidates:
            try:
                chart_version = await self.chart_version_for(tag, index=index)
            except ReleaseNotFoundError:
                logger.debug("Release %s has no chart, trying the next one", tag)
                continue
            logger.info("Resolved mesh release %s -> chart %s", tag, chart_version)
            return ReleaseVersion(tag=tag, chart_version=chart_version)

        raise ReleaseNotFoundError(
            f"Could not find latest stable release (checked {len(candidates)} release(s))"
        )
