"""Exceptions raised by the deployer and its stages."""

from typing import List, Optional, Sequence


class KudeployError(Exception):
    """Base class for all kudeploy failures.

    Attributes:
        message: Description of the failure
        stage: Name of the stage that failed (optional). When set, it is
               prepended to the string form, e.g. ``"apply: exit status 1"``.
    """

    default_stage: Optional[str] = None

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage if stage is not None else self.default_stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ConfigError(KudeployError):
    """Raised when a configuration value cannot be interpreted."""


class DescriptorReadError(KudeployError):
    """Raised when a kustomization descriptor cannot be read.

    Attributes:
        path: Path of the descriptor that could not be read
    """

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class DescriptorNotFoundError(DescriptorReadError):
    """Raised when an overlay directory has no kustomization descriptor."""


class DescriptorParseError(KudeployError):
    """Raised when a kustomization descriptor is not valid YAML or has the wrong shape.

    Attributes:
        path: Path of the malformed descriptor
    """

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class CycleError(KudeployError):
    """Raised when an overlay's base chain loops back on itself.

    Attributes:
        chain: Overlay directories from the outermost overlay to the repeated one
    """

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain: List[str] = list(chain)
        super().__init__("base cycle detected: " + " -> ".join(self.chain))


class ToolInvocationError(KudeployError):
    """Raised when the kustomize subprocess cannot be started or exits non-zero.

    Attributes:
        returncode: Exit status of the tool, or None if it never started
        output: Diagnostic output captured from the tool
    """

    default_stage = "reading manifests"

    def __init__(
        self, message: str, returncode: Optional[int] = None, output: str = ""
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class CommandCancelledError(KudeployError):
    """Raised when a subprocess is killed because the run was cancelled or timed out.

    Attributes:
        cmd: The command line that was interrupted
    """

    def __init__(self, message: str, cmd: Sequence[str]) -> None:
        super().__init__(message)
        self.cmd = list(cmd)


class RewriteError(KudeployError):
    """Raised when image references cannot be rewritten in a manifest."""

    default_stage = "replacing images in manifests"


class LabelError(KudeployError):
    """Raised when labels cannot be set on a manifest."""

    default_stage = "setting labels in manifests"


class ApplyError(KudeployError):
    """Raised when the cluster collaborator fails to apply manifests."""

    default_stage = "apply"


class DeleteError(KudeployError):
    """Raised when the cluster collaborator fails to delete manifests."""

    default_stage = "delete"


class KubectlError(KudeployError):
    """Raised by the kubectl wrapper when kubectl exits non-zero.

    Attributes:
        returncode: Exit status of kubectl, or None if it never started
        stderr: Error output captured from kubectl
    """

    def __init__(
        self, message: str, returncode: Optional[int] = None, stderr: str = ""
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
