API_GROUP = "cluster.x-k8s.io"
API_VERSION = "v1alpha3"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Kinds
KIND_CLUSTER = "Cluster"
KIND_MACHINE = "Machine"
KIND_MACHINE_SET = "MachineSet"
KIND_MACHINE_DEPLOYMENT = "MachineDeployment"
KIND_MACHINE_HEALTH_CHECK = "MachineHealthCheck"

# Label keys
LABEL_CLUSTER_NAME = f"{API_GROUP}/cluster-name"
LABEL_CONTROL_PLANE = f"{API_GROUP}/control-plane"

# Annotation keys
ANNOTATION_TRIGGER_RECONCILE = f"{API_GROUP}/trigger-reconcile"

FIELD_MANAGER = "cluster-refs"

# Environment
METRICS_PORT_ENV = "CLUSTER_REFS_METRICS_PORT"
REQUEST_TIMEOUT_ENV = "CLUSTER_REFS_REQUEST_TIMEOUT"
INFRA_MACHINE_GVK_ENV = "CLUSTER_REFS_INFRA_MACHINE_GVK"

DEFAULT_METRICS_PORT = 8080
DEFAULT_REQUEST_TIMEOUT = 30.0
