"""Shared helpers for walking Kubernetes manifests."""

from io import StringIO
from typing import Any, Iterator, List, Optional, Tuple

from ruamel.yaml import YAML

from kudeploy.k8s.constants import CONTAINER_KEYS


def create_yaml_instance() -> YAML:
    """Create configured ruamel.yaml instance for manifest editing.

    Returns:
        YAML instance configured to:
        - Preserve quotes and formatting
        - Not wrap long strings (prevents image field splitting)
        - Use block style (not flow style)
    """
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096  # Very wide to prevent wrapping long image references
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    return yaml


def dump_all(yaml: YAML, documents: List[Any]) -> str:
    """Serialize documents back into one ``---`` separated YAML stream."""
    stream = StringIO()
    yaml.dump_all(documents, stream)
    return stream.getvalue()


def iter_container_lists(node: Any, path: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], Any]]:
    """Yield ``(path, value)`` for every container list key at any depth.

    Covers ``containers``, ``initContainers`` and ``ephemeralContainers`` in
    Deployments, Pods, Jobs, CronJobs and CRDs that embed pod specs.
    """
    if isinstance(node, dict):
        for key, value in node.items():
            if key in CONTAINER_KEYS:
                yield path + (key,), value
            else:
                yield from iter_container_lists(value, path + (str(key),))
    elif isinstance(node, list):
        for i, item in enumerate(node):
            yield from iter_container_lists(item, path + (str(i),))


def get_pod_templates(manifest: dict) -> List[Any]:
    """Return the pod templates of a workload manifest.

    Looks at ``spec.template`` (Deployments, StatefulSets, DaemonSets, Jobs)
    and ``spec.jobTemplate.spec.template`` (CronJobs).

    Args:
        manifest: Kubernetes manifest dict

    Returns:
        List of template mappings found (may be empty)
    """
    templates = []
    spec = manifest.get("spec")
    if not isinstance(spec, dict):
        return templates

    # Custom resources may use these keys for non-pod data
    if isinstance(spec.get("template"), dict):
        templates.append(spec["template"])

    job_template = spec.get("jobTemplate")
    if isinstance(job_template, dict):
        job_spec = job_template.get("spec")
        if isinstance(job_spec, dict) and isinstance(job_spec.get("template"), dict):
            templates.append(job_spec["template"])

    return templates


def parse_image_name(image: str) -> str:
    """Strip the tag and digest from an image reference.

    Example:
        >>> parse_image_name("gcr.io/proj/app:dev")
        'gcr.io/proj/app'
        >>> parse_image_name("localhost:5000/app@sha256:abcd")
        'localhost:5000/app'
    """
    name = image.split("@", 1)[0]
    colon = name.rfind(":")
    if colon > name.rfind("/"):
        name = name[:colon]
    return name


def describe(document: Any) -> Optional[str]:
    """Short ``Kind/name`` description of a manifest for error messages."""
    if not isinstance(document, dict):
        return None
    metadata = document.get("metadata")
    name = metadata.get("name") if isinstance(metadata, dict) else None
    return f"{document.get('kind', '?')}/{name or '?'}"
