"""Kubernetes / kustomize side of kudeploy.

This package provides:
- Kustomization: kustomization.yaml descriptors and dependency resolution
- read_manifests: runs ``kustomize build`` and captures its output
- replace_images / set_labels: manifest transform stages
- KubectlCLI: default cluster-control collaborator
- KustomizeDeployer: deploy, cleanup and dependency orchestration
"""
