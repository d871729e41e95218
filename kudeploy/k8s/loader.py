"""Manifest loading through ``kustomize build``."""

import logging
from typing import Sequence

from kudeploy.core.context import RunContext
from kudeploy.core.errors import ToolInvocationError
from kudeploy.core.process import run_command
from kudeploy.core.schema.manifest import ManifestList

logger = logging.getLogger(__name__)


def read_manifests(
    ctx: RunContext, overlay_dir: str, command: Sequence[str] = ("kustomize",)
) -> ManifestList:
    """Run ``kustomize build`` on an overlay and capture its output.

    Args:
        ctx: Run context; cancelling it kills kustomize
        overlay_dir: Overlay directory to build
        command: Command used to run kustomize (default: ``("kustomize",)``)

    Returns:
        ManifestList holding the raw build output as a single entry, or an
        empty ManifestList if kustomize printed nothing

    Raises:
        ToolInvocationError: If kustomize cannot be started, exits non-zero or
                             prints output that is not valid UTF-8
        CommandCancelledError: If the context is cancelled while kustomize runs
    """
    cmd = list(command) + ["build", overlay_dir]

    try:
        result = run_command(ctx, cmd)
    except OSError as e:
        raise ToolInvocationError(f"kustomize build: {e}") from e
    except UnicodeDecodeError as e:
        raise ToolInvocationError(f"kustomize build: output is not valid UTF-8: {e}") from e

    if result.returncode != 0:
        raise ToolInvocationError(
            f"kustomize build: exit status {result.returncode}: {result.stderr.strip()}",
            returncode=result.returncode,
            output=result.stderr,
        )

    if not result.stdout.strip():
        logger.info(f"kustomize build {overlay_dir} produced no manifests")
        return ManifestList()

    return ManifestList().append(result.stdout)
