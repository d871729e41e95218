"""Cluster-control collaborator protocol."""

from typing import Optional, Protocol, TextIO

from kudeploy.core.context import RunContext
from kudeploy.core.schema.manifest import ManifestList


class ClusterControl(Protocol):
    """Applies and deletes manifests against a live cluster.

    The deployer only cares whether each call succeeds; any exception is
    treated as a failure of that call.
    """

    def apply(self, ctx: RunContext, out: TextIO, manifests: ManifestList) -> None:
        ...

    def delete(self, ctx: RunContext, out: TextIO, manifests: ManifestList) -> None:
        ...

    def version(self, ctx: RunContext) -> str:
        ...

    def check_version(self, ctx: RunContext, version: Optional[str] = None) -> None:
        """Raise if the client version is not supported.

        ``version`` is the result of an earlier version() call, if any.
        """
        ...
