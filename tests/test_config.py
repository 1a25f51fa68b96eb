"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

import traefik_registrar.__main__ as entrypoint
from traefik_registrar.__main__ import ensure_directories
from traefik_registrar.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("MESHERY_SERVER", "SERVICE_ADDR", "DEBUG", "FORCE_DYNAMIC_REG", "PORT"):
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()

        assert s.meshery_server == "http://localhost:9081"
        assert s.service_addr == "mesherylocal.layer5.io"
        assert s.debug is False
        assert s.force_dynamic_reg is False
        assert s.registration_interval_hours == 24
        assert s.registration_max_elapsed_seconds == 600

    def test_meshery_server_without_scheme(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHERY_SERVER", "meshery:9081")

        assert Settings().meshery_server == "http://meshery:9081"

    def test_meshery_server_with_scheme_kept(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MESHERY_SERVER", "https://meshery.example.com/")

        assert Settings().meshery_server == "https://meshery.example.com"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("TRUE", True), ("false", False), ("", False), ("nope", False)])
    def test_debug_flag(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("DEBUG", raw)

        assert Settings().debug is expected

    def test_force_dynamic_reg(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FORCE_DYNAMIC_REG", "true")

        assert Settings().force_dynamic_reg is True

    def test_advertised_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SERVICE_ADDR", "meshery-traefik-mesh")
        monkeypatch.setenv("PORT", "10006")

        assert Settings().advertised_host == "meshery-traefik-mesh:10006"

    def test_template_paths(self, tmp_path: Path) -> None:
        s = Settings(templates_dir=tmp_path)

        assert s.workloads_path == tmp_path / "oam" / "workloads"
        assert s.traits_path == tmp_path / "oam" / "traits"


def test_ensure_directories_creates_bin(tmp_path: Path) -> None:
    s = Settings(meshery_root=tmp_path / "home" / ".meshery")

    ensure_directories(s)

    assert (tmp_path / "home" / ".meshery" / "bin").is_dir()


class _FakeServer:
    def __init__(self, config, *, started: bool) -> None:
        self.config = config
        self.started = started
        self.ran = False

    def run(self) -> None:
        self.ran = True


class TestMain:
    @pytest.fixture(autouse=True)
    def quiet(self, monkeypatch: pytest.MonkeyPatch, settings: Settings) -> None:
        monkeypatch.setattr(entrypoint, "get_settings", lambda: settings)
        monkeypatch.setattr(entrypoint, "setup_logging", lambda *a, **kw: None)

    def _serve(self, monkeypatch: pytest.MonkeyPatch, *, started: bool) -> list:
        servers = []

        def server(config):
            servers.append(_FakeServer(config, started=started))
            return servers[-1]

        monkeypatch.setattr(entrypoint.uvicorn, "Server", server)
        return servers

    def test_exit_code_1_when_server_never_starts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # e.g. the port is already taken
        servers = self._serve(monkeypatch, started=False)

        assert entrypoint.main() == 1
        assert servers[0].ran

    def test_exit_code_0_after_clean_run(self, monkeypatch: pytest.MonkeyPatch, settings: Settings) -> None:
        servers = self._serve(monkeypatch, started=True)

        assert entrypoint.main() == 0
        assert servers[0].config.port == settings.port
        assert (settings.meshery_root / "bin").is_dir()
