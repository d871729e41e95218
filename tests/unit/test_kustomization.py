"""Tests for kustomization descriptors and dependency resolution."""

import os
from pathlib import Path

import pytest

from kudeploy.core.errors import (
    CycleError,
    DescriptorNotFoundError,
    DescriptorParseError,
    DescriptorReadError,
)
from kudeploy.k8s.kustomization import Kustomization, dependencies_for_kustomization


def write_kustomization(directory: Path, content: str = "") -> str:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "kustomization.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestKustomizationParsing:
    """Tests for Kustomization.from_dict."""

    def test_empty_document(self):
        """Test that an empty descriptor has no references."""
        content = Kustomization.from_dict(None)

        assert content == Kustomization()

    def test_all_fields(self):
        """Test that every referencing field is read."""
        content = Kustomization.from_dict({
            "bases": ["../base"],
            "resources": ["deployment.yaml"],
            "patches": ["patch.yaml"],
            "crds": ["crd.yaml"],
            "patchesJson6902": [{"path": "json.yaml", "target": {"kind": "Deployment"}}],
            "configMapGenerator": [{"name": "cfg", "files": ["a.properties", "b.properties"]}],
            "secretGenerator": [{"name": "s", "files": ["secret.txt"]}],
            "namePrefix": "dev-",
        })

        assert content.bases == ("../base",)
        assert content.resources == ("deployment.yaml",)
        assert content.patches == ("patch.yaml",)
        assert content.crds == ("crd.yaml",)
        assert content.patches_json6902 == ("json.yaml",)
        assert content.config_map_files == ("a.properties", "b.properties")
        assert content.secret_files == ("secret.txt",)

    def test_null_fields_default_to_empty(self):
        """Test that null fields are treated as empty lists."""
        content = Kustomization.from_dict({"resources": None, "configMapGenerator": [{"name": "x"}]})

        assert content.resources == ()
        assert content.config_map_files == ()

    def test_non_mapping_document(self):
        """Test that a list document is rejected."""
        with pytest.raises(DescriptorParseError):
            Kustomization.from_dict(["resources"])

    def test_wrong_field_shape(self):
        """Test that a scalar where a list is expected is rejected."""
        with pytest.raises(DescriptorParseError):
            Kustomization.from_dict({"resources": "deployment.yaml"})


class TestDependencies:
    """Tests for dependencies_for_kustomization."""

    def test_no_bases_only_descriptor(self, tmp_path):
        """Test that a bare descriptor depends only on itself."""
        descriptor = write_kustomization(tmp_path)

        deps = dependencies_for_kustomization(str(tmp_path))

        assert deps == [descriptor]

    def test_local_order(self, tmp_path):
        """Test the fixed order of an overlay's own entries."""
        descriptor = write_kustomization(tmp_path, """
resources: [r1.yaml, r2.yaml]
patches: [p1.yaml]
crds: [c1.yaml]
patchesJson6902:
- path: j1.yaml
configMapGenerator:
- files: [cm1.env]
secretGenerator:
- files: [s1.env]
""")
        root = str(tmp_path)

        deps = dependencies_for_kustomization(root)

        assert deps == [
            descriptor,
            os.path.join(root, "r1.yaml"),
            os.path.join(root, "r2.yaml"),
            os.path.join(root, "p1.yaml"),
            os.path.join(root, "c1.yaml"),
            os.path.join(root, "j1.yaml"),
            os.path.join(root, "cm1.env"),
            os.path.join(root, "s1.env"),
        ]

    def test_json_patch_without_path(self, tmp_path):
        """Test that a patchesJson6902 entry without a path yields the overlay directory."""
        descriptor = write_kustomization(tmp_path, """
patchesJson6902:
- target: {kind: Deployment, name: app}
- path: j1.yaml
""")
        root = str(tmp_path)

        deps = dependencies_for_kustomization(root)

        assert deps == [descriptor, root, os.path.join(root, "j1.yaml")]

    def test_base_entries_come_first(self, tmp_path):
        """Test that base dependencies precede the overlay's own."""
        base_descriptor = write_kustomization(tmp_path / "base")
        overlay = tmp_path / "overlay"
        descriptor = write_kustomization(overlay, "bases: [../base]\nresources: [r1.yaml]\n")

        deps = dependencies_for_kustomization(str(overlay))

        assert deps == [base_descriptor, descriptor, str(overlay / "r1.yaml")]

    def test_bases_in_declaration_order(self, tmp_path):
        """Test that several bases are expanded depth-first in order."""
        write_kustomization(tmp_path / "root", "resources: [root.yaml]\n")
        write_kustomization(tmp_path / "a", "bases: [../root]\nresources: [a.yaml]\n")
        write_kustomization(tmp_path / "b", "resources: [b.yaml]\n")
        write_kustomization(tmp_path / "overlay", "bases: [../a, ../b]\n")

        deps = dependencies_for_kustomization(str(tmp_path / "overlay"))

        assert [os.path.basename(p) for p in deps] == [
            "kustomization.yaml", "root.yaml",
            "kustomization.yaml", "a.yaml",
            "kustomization.yaml", "b.yaml",
            "kustomization.yaml",
        ]
        assert deps[0] == str(tmp_path / "root" / "kustomization.yaml")

    def test_duplicates_are_kept(self, tmp_path):
        """Test that a file listed twice appears twice."""
        write_kustomization(tmp_path, """
resources: [shared.yaml]
configMapGenerator:
- files: [shared.yaml]
""")

        deps = dependencies_for_kustomization(str(tmp_path))

        assert deps.count(str(tmp_path / "shared.yaml")) == 2

    def test_shared_base_is_not_a_cycle(self, tmp_path):
        """Test that two bases sharing a base are both expanded."""
        write_kustomization(tmp_path / "common", "resources: [c.yaml]\n")
        write_kustomization(tmp_path / "a", "bases: [../common]\n")
        write_kustomization(tmp_path / "b", "bases: [../common]\n")
        write_kustomization(tmp_path / "overlay", "bases: [../a, ../b]\n")

        deps = dependencies_for_kustomization(str(tmp_path / "overlay"))

        assert deps.count(str(tmp_path / "common" / "c.yaml")) == 2

    def test_idempotent(self, tmp_path):
        """Test that resolving twice gives the same sequence."""
        write_kustomization(tmp_path / "base", "resources: [d.yaml]\n")
        write_kustomization(tmp_path / "overlay", "bases: [../base]\npatches: [p.yaml]\n")

        first = dependencies_for_kustomization(str(tmp_path / "overlay"))
        second = dependencies_for_kustomization(str(tmp_path / "overlay"))

        assert first == second

    def test_missing_descriptor(self, tmp_path):
        """Test that a directory without kustomization.yaml fails."""
        with pytest.raises(DescriptorNotFoundError) as exc_info:
            dependencies_for_kustomization(str(tmp_path))

        assert isinstance(exc_info.value, DescriptorReadError)
        assert exc_info.value.path.endswith("kustomization.yaml")

    def test_unreadable_descriptor(self, tmp_path):
        """Test that a descriptor path that is a directory fails with a read error."""
        (tmp_path / "kustomization.yaml").mkdir()

        with pytest.raises(DescriptorReadError):
            dependencies_for_kustomization(str(tmp_path))

    def test_malformed_yaml(self, tmp_path):
        """Test that invalid YAML fails with a parse error."""
        write_kustomization(tmp_path, "resources: [unclosed\n")

        with pytest.raises(DescriptorParseError):
            dependencies_for_kustomization(str(tmp_path))

    def test_missing_base_aborts(self, tmp_path):
        """Test that a failing base aborts the whole resolution."""
        write_kustomization(tmp_path / "overlay", "bases: [../missing]\nresources: [r.yaml]\n")

        with pytest.raises(DescriptorNotFoundError) as exc_info:
            dependencies_for_kustomization(str(tmp_path / "overlay"))

        assert "missing" in exc_info.value.path

    def test_cycle_detected(self, tmp_path):
        """Test that a base cycle raises CycleError instead of recursing forever."""
        write_kustomization(tmp_path / "a", "bases: [../b]\n")
        write_kustomization(tmp_path / "b", "bases: [../a]\n")

        with pytest.raises(CycleError) as exc_info:
            dependencies_for_kustomization(str(tmp_path / "a"))

        chain = exc_info.value.chain
        assert chain[0] == chain[-1]
        assert len(chain) == 3

    def test_self_reference_is_a_cycle(self, tmp_path):
        """Test that an overlay listing itself as a base is a cycle."""
        write_kustomization(tmp_path, "bases: [.]\n")

        with pytest.raises(CycleError):
            dependencies_for_kustomization(str(tmp_path))
