"""
kudeploy: kustomize overlay deployer

Builds manifests from a kustomize overlay tree, rewrites image references to
freshly built artifacts, injects labels and hands the result to kubectl for
apply or delete. Also reports which files feed an overlay so callers can
watch them for changes.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
