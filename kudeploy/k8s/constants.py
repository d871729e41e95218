"""Constants shared across the k8s modules."""

# Descriptor file read from every overlay directory
KUSTOMIZATION_FILE = "kustomization.yaml"

# Keys that hold lists of containers in pod specs
CONTAINER_KEYS = ("containers", "initContainers", "ephemeralContainers")

# Labels the deployer puts on everything it deploys
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
DEPLOYER_LABEL = "kudeploy.dev/deployer"

# Oldest kubectl client known to handle ``apply -f -`` of kustomize output
MIN_KUBECTL_VERSION = (1, 12)
