"""Kustomization descriptors and overlay dependency resolution.

This module reads ``kustomization.yaml`` files and expands an overlay's
base chain into the flat list of files that can change what kustomize
builds. The list is what a file watcher needs to know when to redeploy.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kudeploy.core.errors import (
    CycleError,
    DescriptorNotFoundError,
    DescriptorParseError,
    DescriptorReadError,
)
from kudeploy.k8s.constants import KUSTOMIZATION_FILE

logger = logging.getLogger(__name__)


def _strings(data: Dict[str, Any], key: str, path: str) -> Tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DescriptorParseError(f"{key} must be a list of strings", path)
    return tuple(value)


def _entries(data: Dict[str, Any], key: str, path: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise DescriptorParseError(f"{key} must be a list of mappings", path)
    return value


@dataclass(frozen=True)
class Kustomization:
    """Content of a kustomization.yaml file.

    Only the fields that reference other files are kept. Every field is
    optional and defaults to empty.

    Attributes:
        bases: Base overlay directories, relative to the descriptor
        resources: Resource files
        patches: Strategic merge patch files
        crds: CRD files
        patches_json6902: Paths of JSON 6902 patch files
        config_map_files: Files of every configMapGenerator, in order
        secret_files: Files of every secretGenerator, in order
    """
    bases: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()
    patches: Tuple[str, ...] = ()
    crds: Tuple[str, ...] = ()
    patches_json6902: Tuple[str, ...] = ()
    config_map_files: Tuple[str, ...] = ()
    secret_files: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Any, path: str = KUSTOMIZATION_FILE) -> "Kustomization":
        """Build a Kustomization from parsed YAML.

        Args:
            data: Parsed descriptor (None for an empty file)
            path: Descriptor path, used in error messages

        Raises:
            DescriptorParseError: If the document or a known field has the wrong shape
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise DescriptorParseError("descriptor must be a mapping", path)

        json_patches = []
        for patch in _entries(data, "patchesJson6902", path):
            # A missing path joins to the overlay directory itself
            patch_path = patch.get("path") or ""
            if not isinstance(patch_path, str):
                raise DescriptorParseError("patchesJson6902[].path must be a string", path)
            json_patches.append(patch_path)

        config_map_files: List[str] = []
        for generator in _entries(data, "configMapGenerator", path):
            config_map_files.extend(_strings(generator, "files", path))

        secret_files: List[str] = []
        for generator in _entries(data, "secretGenerator", path):
            secret_files.extend(_strings(generator, "files", path))

        return cls(
            bases=_strings(data, "bases", path),
            resources=_strings(data, "resources", path),
            patches=_strings(data, "patches", path),
            crds=_strings(data, "crds", path),
            patches_json6902=tuple(json_patches),
            config_map_files=tuple(config_map_files),
            secret_files=tuple(secret_files),
        )

    @classmethod
    def from_file(cls, path: str) -> "Kustomization":
        """Load a Kustomization from a descriptor file.

        Raises:
            DescriptorNotFoundError: If the file does not exist
            DescriptorReadError: If the file cannot be read
            DescriptorParseError: If the file is not a valid descriptor
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DescriptorNotFoundError(f"{path} not found", path)
        except (OSError, UnicodeDecodeError) as e:
            raise DescriptorReadError(f"reading {path}: {e}", path) from e

        try:
            data = YAML(typ="safe").load(content)
        except YAMLError as e:
            raise DescriptorParseError(f"parsing {path}: {e}", path) from e

        return cls.from_dict(data, path)

    def local_files(self, root: str) -> List[str]:
        """Return this descriptor's own file references joined against ``root``.

        Order: resources, patches, crds, JSON 6902 patches, configMap
        generator files, secret generator files.
        """
        return (
            join_paths(root, self.resources)
            + join_paths(root, self.patches)
            + join_paths(root, self.crds)
            + join_paths(root, self.patches_json6902)
            + join_paths(root, self.config_map_files)
            + join_paths(root, self.secret_files)
        )


def join_paths(root: str, paths: Sequence[str]) -> List[str]:
    return [os.path.normpath(os.path.join(root, path)) for path in paths]


def dependencies_for_kustomization(
    overlay_dir: str, _chain: Optional[List[str]] = None
) -> List[str]:
    """List every file that can change what ``kustomize build overlay_dir`` produces.

    Bases are expanded depth-first, in declaration order, and their files
    come before the overlay's own descriptor and files. Paths are not
    deduplicated: a file referenced twice appears twice.

    Args:
        overlay_dir: Overlay directory containing kustomization.yaml
        _chain: Overlays currently being expanded (internal, for cycle detection)

    Returns:
        File paths, bases first

    Raises:
        DescriptorNotFoundError: If an overlay in the chain has no descriptor
        DescriptorReadError: If a descriptor cannot be read
        DescriptorParseError: If a descriptor is malformed
        CycleError: If a base chain refers back to an overlay being expanded

    Example:
        >>> dependencies_for_kustomization("k8s/overlays/dev")
        ['k8s/base/kustomization.yaml', 'k8s/base/deployment.yaml',
         'k8s/overlays/dev/kustomization.yaml', 'k8s/overlays/dev/patch.yaml']
    """
    chain = list(_chain or [])
    canonical = os.path.realpath(overlay_dir)
    if canonical in chain:
        raise CycleError(chain[chain.index(canonical):] + [canonical])
    chain.append(canonical)

    path = os.path.join(overlay_dir, KUSTOMIZATION_FILE)
    content = Kustomization.from_file(path)

    deps: List[str] = []
    for base in content.bases:
        deps.extend(dependencies_for_kustomization(os.path.join(overlay_dir, base), chain))

    deps.append(os.path.normpath(path))
    deps.extend(content.local_files(overlay_dir))

    logger.debug(f"{overlay_dir}: {len(deps)} dependencies")
    return deps
