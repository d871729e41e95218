"""
Schema definitions shared by the deployer stages.

Artifacts describe built images, labellers contribute labels, manifest lists
carry kustomize output between stages and ClusterControl is the contract the
kubectl wrapper fulfils.
"""

from kudeploy.core.schema.artifact import Artifact
from kudeploy.core.schema.cluster import ClusterControl
from kudeploy.core.schema.labeller import Labeller, StaticLabeller, merge_labels
from kudeploy.core.schema.manifest import ManifestList

__all__ = [
    "Artifact",
    "ClusterControl",
    "Labeller",
    "StaticLabeller",
    "merge_labels",
    "ManifestList",
]
