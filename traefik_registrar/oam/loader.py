# traefik_registrar/oam/loader.py
from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import List, Union

from traefik_registrar.errors import DefinitionLoadError
from traefik_registrar.models import DefinitionPathSet

DEFINITION_SUFFIX = "_definition.json"


def schema_path_for(definition_path: Path, schema_suffix: str = "meshery.layer5io") -> Path:
    """foo_definition.json -> foo.<suffix>.schema.json (same directory)."""
    base = str(definition_path)[: -len(DEFINITION_SUFFIX)]
    return Path(f"{base}.{schema_suffix}.schema.json")


def load_definition_paths(root: Union[str, Path], schema_suffix: str = "meshery.layer5io") -> List[DefinitionPathSet]:
    """
    Walk `root` and pair every `<name>_definition.json` with its schema file.
    Directory entries are visited in lexical order. Any error while walking
    (including a missing root) raises DefinitionLoadError.
    """
    root = Path(root)
    if not root.is_dir():
        raise DefinitionLoadError(str(root), "not a readable directory")

    def _on_error(err: OSError) -> None:
        raise DefinitionLoadError(err.filename or str(root), err.strerror or str(err)) from err

    out: List[DefinitionPathSet] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if not fnmatch.fnmatchcase(filename, "*" + DEFINITION_SUFFIX):
                continue
            definition_path = Path(dirpath) / filename
            out.append(
                DefinitionPathSet(
                    definition_path=definition_path,
                    schema_path=schema_path_for(definition_path, schema_suffix),
                    name=filename[: -len(DEFINITION_SUFFIX)],
                )
            )
    return out
