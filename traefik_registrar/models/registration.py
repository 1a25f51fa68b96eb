# traefik_registrar/models/registration.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from traefik_registrar.errors import DefinitionLoadError, DefinitionParseError

# Metadata keys understood by Meshery
ADAPTER_NAME_METADATA_KEY = "adapter.meshery.io/name"
COMPONENT_CATEGORY_METADATA_KEY = "ui.meshery.io/category"


# ─────────────────────────────────────────────────────────────
# Local template discovery
# ─────────────────────────────────────────────────────────────

class DefinitionPathSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    definition_path: Path
    schema_path: Path
    name: str


# ─────────────────────────────────────────────────────────────
# Registration payloads
# ─────────────────────────────────────────────────────────────

class RegistrantEntry(BaseModel):
    """
    One capability as Meshery expects it on the wire:
      { "OAMDefinition": {...}, "OAMRefSchema": "<raw json>", "Host": "...", "Metadata": {...} }
    """
    model_config = ConfigDict(populate_by_name=True)

    definition: Dict[str, Any] = Field(alias="OAMDefinition")
    schema_: str = Field(alias="OAMRefSchema")
    host: str = Field(alias="Host")
    metadata: Dict[str, str] = Field(default_factory=dict, alias="Metadata")

    def wire_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RegistrantDefinitionPath(BaseModel):
    """A registration item that still lives on disk; loaded right before it is sent."""
    model_config = ConfigDict(frozen=True)

    definition_path: Path
    schema_path: Path
    host: str
    metadata: Dict[str, str] = Field(default_factory=dict)

    def load(self) -> RegistrantEntry:
        definition_text = _read_text(self.definition_path)
        try:
            definition = json.loads(definition_text)
        except json.JSONDecodeError as e:
            raise DefinitionParseError(str(self.definition_path), str(e)) from e
        if not isinstance(definition, dict):
            raise DefinitionParseError(str(self.definition_path), "expected a JSON object")

        return RegistrantEntry(
            definition=definition,
            schema_=_read_text(self.schema_path),
            host=self.host,
            metadata=dict(self.metadata),
        )


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionLoadError(str(path), e.strerror or str(e)) from e


# ─────────────────────────────────────────────────────────────
# Remote (Helm chart) discovery
# ─────────────────────────────────────────────────────────────

class GitHubRelease(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tag_name: str
    draft: bool = False
    prerelease: bool = False


class ReleaseVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    chart_version: str


class ChartComponents(BaseModel):
    """Parallel arrays: definitions[i] is described by schemas[i]."""
    definitions: List[str] = Field(default_factory=list)
    schemas: List[str] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────
# Pass reporting
# ─────────────────────────────────────────────────────────────

class RegistrationReport(BaseModel):
    pass_name: str
    ok: bool
    registered: int = 0
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
