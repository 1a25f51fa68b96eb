# traefik_registrar/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Identity
    service_name: str = "traefik-mesh-adaptor"
    service_version: str = "none"
    git_sha: str = "none"
    adapter_name: str = "traefik_mesh"
    mesh_name: str = "TRAEFIK_MESH"

    # Host process
    host: str = "0.0.0.0"
    port: int = 10006
    debug: bool = False
    log_level: str = "INFO"

    # Registration target + advertised address
    meshery_server: str = "http://localhost:9081"
    service_addr: str = "mesherylocal.layer5.io"

    # Local templates (<templates_dir>/oam/{workloads,traits})
    templates_dir: Path = Path.cwd() / "templates"
    schema_suffix: str = "meshery.layer5io"

    # Adapter home; <meshery_root>/bin must exist before serving
    meshery_root: Path = Path.home() / ".meshery"

    # Dynamic registration
    force_dynamic_reg: bool = False
    mesh_version: str = ""
    releases_url: str = "https://api.github.com/repos/traefik/mesh/releases"
    release_lookback: int = 10
    helm_repo_url: str = "https://helm.traefik.io/mesh"
    helm_chart_name: str = "maesh"
    chart_url_template: str = "https://helm.traefik.io/mesh/maesh-{chart_version}.tgz"
    registration_interval_hours: float = 24.0

    # Registrant retry (exponential backoff bounded by total elapsed time)
    registration_max_elapsed_seconds: float = 600.0
    registration_initial_backoff_seconds: float = 0.5
    registration_max_backoff_seconds: float = 60.0
    registration_backoff_jitter_seconds: float = 0.5

    # HTTP client
    http_client_timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("debug", "force_dynamic_reg", mode="before")
    @classmethod
    def _as_bool(cls, v: object) -> bool:
        # Only an explicit "true"-ish value enables a flag; anything else is off.
        if isinstance(v, bool):
            return v
        if v is None:
            return False
        return str(v).strip().lower() in {"1", "true", "yes", "on"}

    @field_validator("meshery_server")
    @classmethod
    def _ensure_scheme(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            return "http://localhost:9081"
        if v.startswith("http"):
            return v.rstrip("/")
        return "http://" + v.rstrip("/")

    @property
    def workloads_path(self) -> Path:
        return self.templates_dir / "oam" / "workloads"

    @property
    def traits_path(self) -> Path:
        return self.templates_dir / "oam" / "traits"

    @property
    def advertised_host(self) -> str:
        """Address Meshery uses to reach this adapter (SERVICE_ADDR:port)."""
        return f"{self.service_addr}:{self.port}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
