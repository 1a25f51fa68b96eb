"""Shared fixtures: settings pointed at a temp template tree and a recording HTTP stub."""

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from traefik_registrar.config import Settings


class StubServer:
    """Records every request and answers through a user supplied handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def posts(self, path: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and (path is None or r.url.path == path)]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def write_pair(directory: Path, name: str, definition: dict | str | None = None, schema: str = "{}") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    definition_path = directory / f"{name}_definition.json"
    if definition is None:
        definition = {"kind": "WorkloadDefinition", "metadata": {"name": name}}
    definition_path.write_text(definition if isinstance(definition, str) else json.dumps(definition))
    (directory / f"{name}.meshery.layer5io.schema.json").write_text(schema)
    return definition_path


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    root = tmp_path / "templates"
    (root / "oam" / "workloads").mkdir(parents=True)
    (root / "oam" / "traits").mkdir(parents=True)
    return root


@pytest.fixture
def settings(templates_dir: Path, tmp_path: Path) -> Settings:
    """Settings with short retry windows so failure paths finish quickly."""
    return Settings(
        templates_dir=templates_dir,
        meshery_root=tmp_path / ".meshery",
        meshery_server="http://meshery.test:9081",
        service_addr="traefik-adapter.test",
        port=10006,
        registration_max_elapsed_seconds=0.3,
        registration_initial_backoff_seconds=0.01,
        registration_max_backoff_seconds=0.05,
        registration_backoff_jitter_seconds=0.0,
    )
