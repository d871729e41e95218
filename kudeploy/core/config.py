"""Configuration loading for kudeploy.

This module reads optional settings from a config.json file, with
environment variable fallbacks, and turns the ``deploy`` section into an
explicit :class:`DeployConfig` value that is handed to the deployer at
construction time.

Example config.json::

    {
      "deploy": {
        "kustomize_path": "k8s/overlays/dev",
        "namespace": "payments",
        "kube_context": "kind-dev",
        "default_repo": "gcr.io/my-project",
        "flags": {"global": ["--v=2"], "apply": ["--force"], "delete": []}
      }
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from kudeploy.core.errors import ConfigError

logger = logging.getLogger(__name__)


CONFIG_ENV_VAR = "KUDEPLOY_CONFIG"

# Settings that may come from DEPLOY_<KEY> environment variables
ENV_SETTINGS = ("namespace", "kube_context", "default_repo")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the JSON config file.

    Args:
        config_path: Path to the file; defaults to $KUDEPLOY_CONFIG, then
                     config.json in the working directory

    Returns:
        Parsed top-level mapping, or {} when the file is absent

    Raises:
        ConfigError: If the file cannot be read or is not a JSON object
    """
    path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or "config.json")
    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"reading {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object, got {type(data).__name__}")
    return data


def deploy_section(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return the ``deploy`` mapping of a loaded config ({} when absent)."""
    section = config.get("deploy")
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"deploy config must be a mapping, got {section!r}")
    return section


def deploy_setting(section: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Look up a deploy setting, falling back to the DEPLOY_<KEY> environment variable.

    Values present in the config file win over the environment.
    """
    value = section.get(key)
    if value is not None:
        return value
    return os.environ.get(f"DEPLOY_{key.upper()}", default)


def _string_list(value: Any, name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of strings, got {value!r}")
    return list(value)


@dataclass(frozen=True)
class KubectlFlags:
    """Extra kubectl command line flags.

    Attributes:
        global_: Flags added to every kubectl invocation
        apply: Flags added to ``kubectl apply``
        delete: Flags added to ``kubectl delete``
    """
    global_: Tuple[str, ...] = ()
    apply: Tuple[str, ...] = ()
    delete: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "KubectlFlags":
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"flags must be a mapping, got {data!r}")
        return cls(
            global_=tuple(_string_list(data.get("global"), "flags.global")),
            apply=tuple(_string_list(data.get("apply"), "flags.apply")),
            delete=tuple(_string_list(data.get("delete"), "flags.delete")),
        )


@dataclass(frozen=True)
class DeployConfig:
    """Settings for one kustomize deployer.

    Attributes:
        kustomize_path: Overlay directory passed to ``kustomize build``
        flags: Extra kubectl flags
        namespace: Namespace passed to kubectl (optional)
        kube_context: kubeconfig context passed to kubectl (optional)
        default_repo: Repository prefixed to rewritten image references (optional)
        kustomize_command: Command used to run kustomize
        kubectl_command: Command used to run kubectl
    """
    kustomize_path: str = "."
    flags: KubectlFlags = field(default_factory=KubectlFlags)
    namespace: Optional[str] = None
    kube_context: Optional[str] = None
    default_repo: Optional[str] = None
    kustomize_command: Tuple[str, ...] = ("kustomize",)
    kubectl_command: Tuple[str, ...] = ("kubectl",)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DeployConfig":
        """Build a DeployConfig from the ``deploy`` section of config.json.

        Args:
            data: Mapping with any of the DeployConfig field names; ``flags``
                  uses the keys ``global``, ``apply`` and ``delete``

        Returns:
            DeployConfig with defaults for missing keys

        Raises:
            ConfigError: If a value has the wrong type
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"deploy config must be a mapping, got {data!r}")

        kwargs: Dict[str, Any] = {"flags": KubectlFlags.from_dict(data.get("flags"))}
        for key in ("kustomize_path", "namespace", "kube_context", "default_repo"):
            value = data.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {value!r}")
            kwargs[key] = value
        for key in ("kustomize_command", "kubectl_command"):
            if data.get(key) is not None:
                command = _string_list(data[key], key)
                if not command:
                    raise ConfigError(f"{key} must not be empty")
                kwargs[key] = tuple(command)

        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_path: Optional[str] = None) -> "DeployConfig":
        """Load DeployConfig from the ``deploy`` section of a config file.

        Namespace, context and default repository fall back to the
        DEPLOY_NAMESPACE, DEPLOY_KUBE_CONTEXT and DEPLOY_DEFAULT_REPO
        environment variables.

        Raises:
            ConfigError: If the file is unreadable or a value has the wrong type
        """
        section = dict(deploy_section(load_config(config_path)))
        for key in ENV_SETTINGS:
            section[key] = deploy_setting(section, key)
        return cls.from_dict(section)
