"""kubetool - availability-preserving pod replacement for replication controllers."""

from .availability import (
    AvailabilityReport,
    controller_available,
    pod_available,
    required_stable,
)
from .cluster import ClusterClient
from .config import AvailabilityPolicy, Settings, get_settings
from .console import Presenter
from .errors import (
    ContainerNotFoundError,
    ControllerNotFoundError,
    DecodeError,
    EmptySetError,
    KubetoolError,
    NotFoundError,
    StabilityTimeoutError,
    TransportError,
    UserAbortError,
)
from .models import (
    Container,
    ContainerState,
    ContainerStateKind,
    ContainerStatus,
    ObjectMeta,
    Pod,
    PodPhase,
    ReplicationController,
    Selector,
    split_image,
)
from .rollout import RolloutOrchestrator, RolloutPhase

__version__ = "0.1.0"

__all__ = [
    # Cluster access
    "ClusterClient",
    # Availability
    "AvailabilityPolicy",
    "AvailabilityReport",
    "controller_available",
    "pod_available",
    "required_stable",
    # Rollout
    "RolloutOrchestrator",
    "RolloutPhase",
    "Presenter",
    # Configuration
    "Settings",
    "get_settings",
    # Models
    "Container",
    "ContainerState",
    "ContainerStateKind",
    "ContainerStatus",
    "ObjectMeta",
    "Pod",
    "PodPhase",
    "ReplicationController",
    "Selector",
    "split_image",
    # Errors
    "KubetoolError",
    "TransportError",
    "DecodeError",
    "NotFoundError",
    "ControllerNotFoundError",
    "ContainerNotFoundError",
    "EmptySetError",
    "StabilityTimeoutError",
    "UserAbortError",
]
