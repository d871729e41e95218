"""Kustomize deployer: load, transform and apply overlay manifests.

This module provides the main entry points of kudeploy:
- KustomizeDeployer.deploy: kustomize build -> rewrite images -> set labels -> kubectl apply
- KustomizeDeployer.cleanup: kustomize build -> kubectl delete
- KustomizeDeployer.dependencies: files that influence the overlay
"""

import enum
import logging
import os
import sys
from typing import Dict, List, Optional, Sequence, TextIO

from kudeploy.core.config import DeployConfig
from kudeploy.core.context import RunContext
from kudeploy.core.errors import ApplyError, CommandCancelledError, DeleteError, KudeployError
from kudeploy.core.events import EventSink, LoggingEventSink, notify
from kudeploy.core.schema.artifact import Artifact
from kudeploy.core.schema.cluster import ClusterControl
from kudeploy.core.schema.labeller import Labeller, merge_labels
from kudeploy.core.schema.manifest import ManifestList
from kudeploy.k8s.constants import DEPLOYER_LABEL, MANAGED_BY_LABEL
from kudeploy.k8s.kubectl import KubectlCLI
from kudeploy.k8s.kustomization import dependencies_for_kustomization
from kudeploy.k8s.loader import read_manifests
from kudeploy.k8s.transforms import replace_images, set_labels

logger = logging.getLogger(__name__)


class DeployState(enum.Enum):
    """Stages a deploy moves through."""
    IDLE = "idle"
    LOADING = "loading"
    TRANSFORMING = "transforming"
    APPLYING = "applying"
    COMPLETE = "complete"
    FAILED = "failed"


class _Run:
    """State of a single deploy or cleanup call."""

    def __init__(self, operation: str):
        self.operation = operation
        self.state = DeployState.IDLE

    def enter(self, state: DeployState) -> None:
        logger.debug(f"{self.operation}: {self.state.value} -> {state.value}")
        self.state = state


class KustomizeDeployer:
    """Deploys a kustomize overlay with kubectl.

    The deployer holds only its configuration and collaborators, so one
    instance can serve concurrent calls. Each call builds the overlay afresh.

    Attributes:
        config: Deployer settings (overlay path, kubectl options, default repo)
        cluster: Cluster-control collaborator (defaults to KubectlCLI)
        events: Lifecycle notification sink (defaults to LoggingEventSink)

    Example:
        >>> deployer = KustomizeDeployer(DeployConfig(kustomize_path="k8s/overlays/dev"))
        >>> deployer.deploy(RunContext(), [Artifact("app", "app@sha256:abcd")], [])
        <DeployState.COMPLETE: 'complete'>
    """

    def __init__(
        self,
        config: DeployConfig,
        cluster: Optional[ClusterControl] = None,
        events: Optional[EventSink] = None,
    ):
        self.config = config
        self.cluster = cluster or KubectlCLI(
            namespace=config.namespace,
            kube_context=config.kube_context,
            flags=config.flags,
            command=config.kubectl_command,
        )
        self.events = events or LoggingEventSink()

    def labels(self) -> Dict[str, str]:
        """Labels identifying resources deployed by this deployer."""
        return {
            MANAGED_BY_LABEL: "kudeploy",
            DEPLOYER_LABEL: "kustomize",
        }

    def dependencies(self) -> List[str]:
        """List all the files that can change what needs to be deployed.

        Returns:
            Absolute file paths, bases first, duplicates kept

        Raises:
            DescriptorReadError, DescriptorParseError, CycleError: unchanged
            from the resolver; no partial list is returned
        """
        return dependencies_for_kustomization(os.path.abspath(self.config.kustomize_path))

    def _read_manifests(self, ctx: RunContext) -> ManifestList:
        return read_manifests(ctx, self.config.kustomize_path, self.config.kustomize_command)

    def _log_client_version(self, ctx: RunContext, out: TextIO) -> None:
        # Advisory only: nothing here may stop the deploy except cancellation
        try:
            version = self.cluster.version(ctx)
        except CommandCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Unable to get kubectl client version: {e}")
            version = "unknown"
        print(f"kubectl client version: {version}", file=out)

        try:
            self.cluster.check_version(ctx, version)
        except CommandCancelledError:
            raise
        except Exception as e:
            logger.warning(str(e))

    def deploy(
        self,
        ctx: RunContext,
        builds: Sequence[Artifact],
        labellers: Sequence[Labeller] = (),
        out: Optional[TextIO] = None,
    ) -> DeployState:
        """Build the overlay, point images at ``builds``, label and apply.

        Notifications: nothing is emitted when kustomize produces no
        manifests. Otherwise deploy-in-progress is emitted before the
        transforms and exactly one of deploy-complete or deploy-failed after.

        Args:
            ctx: Run context; cancelling it aborts kustomize or kubectl
            builds: Built images to deploy
            labellers: Extra label contributors, applied after the deployer's
                       own labels (later ones win)
            out: Stream receiving kubectl output (default: stdout)

        Returns:
            DeployState.COMPLETE

        Raises:
            ToolInvocationError: kustomize failed
            RewriteError: images could not be replaced
            LabelError: labels could not be set
            ApplyError: the cluster collaborator failed to apply
            CommandCancelledError: the context was cancelled
        """
        out = out or sys.stdout
        run = _Run("deploy")

        self._log_client_version(ctx, out)

        run.enter(DeployState.LOADING)
        try:
            manifests = self._read_manifests(ctx)
        except KudeployError as e:
            run.enter(DeployState.FAILED)
            notify(self.events, "deploy_failed", e)
            raise

        if len(manifests) == 0:
            run.enter(DeployState.COMPLETE)
            return run.state

        notify(self.events, "deploy_in_progress")

        run.enter(DeployState.TRANSFORMING)
        try:
            manifests = replace_images(manifests, builds, self.config.default_repo)
            manifests = set_labels(manifests, merge_labels([self, *labellers]))
        except KudeployError as e:
            run.enter(DeployState.FAILED)
            notify(self.events, "deploy_failed", e)
            raise

        run.enter(DeployState.APPLYING)
        try:
            self.cluster.apply(ctx, out, manifests)
        except CommandCancelledError as e:
            run.enter(DeployState.FAILED)
            notify(self.events, "deploy_failed", e)
            raise
        except Exception as e:
            run.enter(DeployState.FAILED)
            err = ApplyError(str(e))
            notify(self.events, "deploy_failed", err)
            raise err from e

        notify(self.events, "deploy_complete")
        run.enter(DeployState.COMPLETE)
        return run.state

    def cleanup(self, ctx: RunContext, out: Optional[TextIO] = None) -> DeployState:
        """Delete what deploy created.

        The overlay is built again and the untransformed output is passed to
        the cluster collaborator's delete, since deletion only needs resource
        identity. No lifecycle notifications are emitted.

        Args:
            ctx: Run context; cancelling it aborts kustomize or kubectl
            out: Stream receiving kubectl output (default: stdout)

        Returns:
            DeployState.COMPLETE

        Raises:
            ToolInvocationError: kustomize failed
            DeleteError: the cluster collaborator failed to delete
            CommandCancelledError: the context was cancelled
        """
        out = out or sys.stdout
        run = _Run("cleanup")

        run.enter(DeployState.LOADING)
        try:
            manifests = self._read_manifests(ctx)
        except KudeployError:
            run.enter(DeployState.FAILED)
            raise

        run.enter(DeployState.APPLYING)
        try:
            self.cluster.delete(ctx, out, manifests)
        except CommandCancelledError:
            run.enter(DeployState.FAILED)
            raise
        except Exception as e:
            run.enter(DeployState.FAILED)
            raise DeleteError(str(e)) from e

        run.enter(DeployState.COMPLETE)
        return run.state
