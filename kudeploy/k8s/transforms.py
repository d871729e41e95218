"""Manifest transform stages.

Two pure stages run on kustomize output before it is applied:

1. :func:`replace_images` points container images at freshly built artifacts.
2. :func:`set_labels` stamps labels onto every resource and pod template.

Both use ruamel.yaml round-trip mode so comments and formatting survive, and
both return a new ManifestList; the input list is never modified.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ruamel.yaml.error import YAMLError

from kudeploy.core.errors import LabelError, RewriteError
from kudeploy.core.schema.artifact import Artifact
from kudeploy.core.schema.manifest import ManifestList
from kudeploy.k8s.utils import (
    create_yaml_instance,
    describe,
    dump_all,
    get_pod_templates,
    iter_container_lists,
    parse_image_name,
)

logger = logging.getLogger(__name__)


def _resolve_image(artifacts: Sequence[Artifact], image: str, default_repo: Optional[str]) -> Optional[str]:
    name = parse_image_name(image)
    for artifact in artifacts:
        if artifact.image_name != name:
            continue
        if not default_repo:
            return artifact.tag
        prefix = default_repo.rstrip("/") + "/"
        if artifact.tag.startswith(prefix):
            return artifact.tag
        return prefix + artifact.tag
    return None


def replace_images(
    manifests: ManifestList, artifacts: Sequence[Artifact], default_repo: Optional[str] = None
) -> ManifestList:
    """Replace container image references with built artifacts.

    Every container (including init and ephemeral containers, at any depth)
    whose image name matches an artifact's ``image_name`` gets the artifact's
    ``tag``. Existing tags and digests in the manifest are ignored when
    matching. Images without a matching artifact are left alone.

    Args:
        manifests: Manifests to rewrite
        artifacts: Built images; the first artifact with a matching name wins
        default_repo: Repository prefixed to the replacement (optional)

    Returns:
        New ManifestList with rewritten images

    Raises:
        RewriteError: If an entry is not valid YAML or a container/image field
                      has an unexpected shape

    Example:
        >>> replaced = replace_images(manifests, [Artifact("app", "app@sha256:abcd")])
        # "image: app:dev" becomes "image: app@sha256:abcd"
    """
    yaml = create_yaml_instance()
    result: List[str] = []

    for manifest in manifests:
        try:
            documents = [doc for doc in yaml.load_all(manifest) if doc is not None]
        except YAMLError as e:
            raise RewriteError(f"parsing manifest: {e}") from e

        for document in documents:
            for path, containers in iter_container_lists(document):
                location = f"{describe(document)} {'.'.join(path)}"
                # CRD schemas also use these keys; only lists of mappings are pod specs
                if not isinstance(containers, list):
                    continue
                for container in containers:
                    if not isinstance(container, dict) or "image" not in container:
                        continue
                    image = container["image"]
                    if not isinstance(image, str):
                        raise RewriteError(f"{location}: image is not a string: {image!r}")
                    replacement = _resolve_image(artifacts, image, default_repo)
                    if replacement is not None:
                        logger.debug(f"{location}: {image} -> {replacement}")
                        container["image"] = replacement

        result.append(dump_all(yaml, documents))

    return ManifestList(tuple(result))


def _labels_of(node: Any, where: str) -> Any:
    if not isinstance(node, dict):
        raise LabelError(f"{where} is not a mapping")
    metadata = node.get("metadata")
    if metadata is None:
        metadata = node["metadata"] = {}
    if not isinstance(metadata, dict):
        raise LabelError(f"{where}.metadata is not a mapping")
    labels = metadata.get("labels")
    if labels is None:
        labels = metadata["labels"] = {}
    if not isinstance(labels, dict):
        raise LabelError(f"{where}.metadata.labels is not a mapping")
    return labels


def set_labels(manifests: ManifestList, labels: Mapping[str, str]) -> ManifestList:
    """Set labels on every manifest and on nested pod templates.

    Labels land in ``metadata.labels`` of each document and, for workloads,
    in the pod template's ``metadata.labels``. Existing labels are kept
    unless a given key collides, in which case the given value wins.

    Args:
        manifests: Manifests to label
        labels: Labels to set (usually from merge_labels)

    Returns:
        New ManifestList with labels set

    Raises:
        LabelError: If an entry is not valid YAML or a document, its metadata
                    or its labels are not mappings
    """
    if not labels:
        return ManifestList(manifests.manifests)

    yaml = create_yaml_instance()
    result: List[str] = []

    for manifest in manifests:
        try:
            documents = [doc for doc in yaml.load_all(manifest) if doc is not None]
        except YAMLError as e:
            raise LabelError(f"parsing manifest: {e}") from e

        for document in documents:
            where = describe(document) or "document"
            targets: List[Dict[str, Any]] = [_labels_of(document, where)]
            for template in get_pod_templates(document):
                targets.append(_labels_of(template, f"{where} pod template"))
            for target in targets:
                target.update(labels)

        result.append(dump_all(yaml, documents))

    return ManifestList(tuple(result))
