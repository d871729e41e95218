"""kubectl command line wrapper.

KubectlCLI is the default cluster-control collaborator of the deployer. It
pipes manifests to ``kubectl apply -f -`` / ``kubectl delete -f -`` with the
configured context, namespace and extra flags.
"""

import json
import logging
import re
from typing import List, Optional, Sequence, TextIO, Tuple

from kudeploy.core.config import KubectlFlags
from kudeploy.core.context import RunContext
from kudeploy.core.errors import KubectlError
from kudeploy.core.process import run_command
from kudeploy.core.schema.manifest import ManifestList
from kudeploy.k8s.constants import MIN_KUBECTL_VERSION

logger = logging.getLogger(__name__)


def parse_version(version: str) -> Optional[Tuple[int, int]]:
    """Extract ``(major, minor)`` from a version string like ``v1.28.3``."""
    match = re.match(r"^v?(\d+)\.(\d+)", version)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class KubectlCLI:
    """Runs kubectl against one cluster context and namespace.

    Attributes:
        namespace: Namespace passed as ``--namespace`` (optional)
        kube_context: Context passed as ``--context`` (optional)
        flags: Extra global, apply and delete flags
        command: Command used to run kubectl
    """

    def __init__(
        self,
        namespace: Optional[str] = None,
        kube_context: Optional[str] = None,
        flags: Optional[KubectlFlags] = None,
        command: Sequence[str] = ("kubectl",),
    ):
        self.namespace = namespace
        self.kube_context = kube_context
        self.flags = flags or KubectlFlags()
        self.command = tuple(command)

    def _args(self, verb: str, *args: str) -> List[str]:
        cmd = list(self.command)
        if self.kube_context:
            cmd.append(f"--context={self.kube_context}")
        if self.namespace:
            cmd.append(f"--namespace={self.namespace}")
        cmd.extend(self.flags.global_)
        cmd.append(verb)
        cmd.extend(args)
        return cmd

    def _run(self, ctx: RunContext, verb: str, cmd: List[str], input_text: Optional[str] = None):
        try:
            result = run_command(ctx, cmd, input_text=input_text)
        except OSError as e:
            raise KubectlError(f"running kubectl: {e}") from e
        except UnicodeDecodeError as e:
            raise KubectlError(f"kubectl {verb}: output is not valid UTF-8: {e}") from e

        if result.returncode != 0:
            raise KubectlError(
                f"kubectl {verb}: exit status {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def apply(self, ctx: RunContext, out: TextIO, manifests: ManifestList) -> None:
        """Pipe manifests to ``kubectl apply -f -``; no-op for an empty list."""
        if len(manifests) == 0:
            return
        cmd = self._args("apply", *self.flags.apply, "-f", "-")
        result = self._run(ctx, "apply", cmd, input_text=manifests.to_yaml())
        out.write(result.stdout)

    def delete(self, ctx: RunContext, out: TextIO, manifests: ManifestList) -> None:
        """Pipe manifests to ``kubectl delete -f -``; no-op for an empty list."""
        if len(manifests) == 0:
            return
        cmd = self._args("delete", "--ignore-not-found=true", *self.flags.delete, "-f", "-")
        result = self._run(ctx, "delete", cmd, input_text=manifests.to_yaml())
        out.write(result.stdout)

    def version(self, ctx: RunContext) -> str:
        """Return the kubectl client version, or ``"unknown"`` if it cannot be read."""
        cmd = list(self.command) + ["version", "--client", "-o", "json"]
        try:
            result = run_command(ctx, cmd)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to get kubectl client version: {e}")
            return "unknown"

        if result.returncode != 0:
            logger.warning(f"Unable to get kubectl client version: {result.stderr.strip()}")
            return "unknown"

        try:
            info = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.warning("Unable to parse kubectl client version")
            return "unknown"

        client = info.get("clientVersion") if isinstance(info, dict) else None
        if not isinstance(client, dict) or not client.get("gitVersion"):
            return "unknown"
        return str(client["gitVersion"])

    def check_version(self, ctx: RunContext, version: Optional[str] = None) -> None:
        """Raise KubectlError if the client is older than the minimum supported version.

        Args:
            ctx: Run context
            version: Client version already read with version() (optional);
                     kubectl is asked again when omitted
        """
        if version is None:
            version = self.version(ctx)
        parsed = parse_version(version)
        if parsed is None:
            raise KubectlError(f"unable to determine kubectl client version (got {version!r})")
        if parsed < MIN_KUBECTL_VERSION:
            minimum = ".".join(str(v) for v in MIN_KUBECTL_VERSION)
            raise KubectlError(
                f"kubectl client version {version} is older than the minimum supported {minimum}"
            )
