"""Tests for chart extraction and the CRD filter pipeline."""

import io
import json
import tarfile

import pytest
import yaml

from traefik_registrar.errors import ChartError
from traefik_registrar.oam.helm import CrdFilter, apply_filter, extract_manifests, generate_components


def crd(kind: str, group: str = "access.smi-spec.io", versions: tuple[str, ...] = ("v1alpha2",)) -> dict:
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{kind.lower()}s.{group}"},
        "spec": {
            "group": group,
            "names": {"kind": kind, "plural": f"{kind.lower()}s"},
            "versions": [
                {
                    "name": v,
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {
                                "spec": {
                                    "type": "object",
                                    "properties": {"destination": {"type": "object"}},
                                }
                            },
                        }
                    },
                }
                for v in versions
            ],
        },
    }


def build_chart(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, text in files.items():
            data = text.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


SAMPLE_CHART = {
    "maesh/Chart.yaml": "apiVersion: v2\nname: maesh\nversion: 3.0.4\nappVersion: v1.4.8\n",
    "maesh/crds/smi.yaml": yaml.safe_dump_all([crd("TrafficTarget"), crd("HTTPRouteGroup", group="specs.smi-spec.io")]),
    "maesh/templates/deployment.yaml": "apiVersion: apps/v1\nkind: Deployment\nmetadata:\n  name: {{ .Release.Name }}\n",
    "maesh/README.md": "# not yaml",
}


class TestExtractManifests:
    def test_reads_yaml_members(self) -> None:
        docs = extract_manifests(build_chart(SAMPLE_CHART))

        kinds = [d.get("kind") for d in docs]
        assert kinds.count("CustomResourceDefinition") == 2

    def test_rejects_non_archives(self) -> None:
        with pytest.raises(ChartError):
            extract_manifests(b"definitely not a tarball")


class TestFilters:
    def test_root_filter_keeps_only_crds(self) -> None:
        docs = [crd("A"), {"kind": "Deployment"}, crd("B")]

        selected = apply_filter(CrdFilter().root_filter, docs)

        assert [d["spec"]["names"]["kind"] for d in selected] == ["A", "B"]

    def test_version_filter_takes_first_version(self) -> None:
        doc = crd("A", versions=("v1beta1", "v1"))

        assert apply_filter(CrdFilter().version_filter, doc) == ["v1beta1"]

    def test_spec_filter_returns_spec_schema(self) -> None:
        (spec,) = apply_filter(CrdFilter().spec_filter, crd("A"))

        assert spec["properties"] == {"destination": {"type": "object"}}


class TestGenerateComponents:
    def test_parallel_definitions_and_schemas(self) -> None:
        manifests = extract_manifests(build_chart(SAMPLE_CHART))

        out = generate_components(manifests, CrdFilter(), mesh_name="TRAEFIK_MESH", mesh_version="v1.4.8")

        assert len(out.definitions) == len(out.schemas) == 2
        first = json.loads(out.definitions[0])
        assert first["metadata"]["name"] == "TrafficTarget"
        assert "apiVersion" not in first and "kind" not in first
        assert first["spec"]["definitionRef"]["name"] == "traffictarget.access.smi-spec.io"
        assert first["spec"]["metadata"]["k8sAPIVersion"] == "access.smi-spec.io/v1alpha2"
        assert first["spec"]["metadata"]["meshVersion"] == "v1.4.8"
        schema = json.loads(out.schemas[0])
        assert schema["title"] == "TrafficTarget"
        assert schema["type"] == "object"

    def test_crds_missing_fields_are_skipped(self) -> None:
        broken = crd("Broken")
        del broken["spec"]["group"]

        out = generate_components([broken, crd("Ok")], CrdFilter(), mesh_name="TRAEFIK_MESH", mesh_version="v1")

        assert [json.loads(d)["metadata"]["name"] for d in out.definitions] == ["Ok"]
