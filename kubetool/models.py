"""Kubernetes resource models for kubetool.

The models decode the JSON returned by the API server. Field aliases follow
the server's camelCase keys; ``populate_by_name`` lets tests and callers
build them with the Python names.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TAG = "latest"

Selector = dict[str, str]


def split_image(image: str) -> tuple[str, str]:
    """
    Split an image reference into repository and tag.

    The split happens at the last colon, so a registry port in the host
    part is kept in the repository (``host:5000/repo:tag``). A colon that
    is followed by a path separator is a port, not a tag.

    Args:
        image: Image reference such as ``nginx:1.9.12``

    Returns:
        Tuple of (repository, tag); tag defaults to ``latest``
    """
    last_colon = image.rfind(":")
    if last_colon <= 0 or "/" in image[last_colon + 1 :]:
        return image, DEFAULT_TAG
    return image[:last_colon], image[last_colon + 1 :]


def format_selector(selector: Optional[Selector]) -> Optional[str]:
    """Render a selector as ``k=v,k=v``, or None when it is empty."""
    if not selector:
        return None
    return ",".join(f"{k}={v}" for k, v in selector.items())


class KubeModel(BaseModel):
    """Base model for decoded API objects."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PodPhase(str, Enum):
    """Pod lifecycle phase."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class ContainerStateKind(str, Enum):
    """Which branch of a container state is set."""

    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"


class ObjectMeta(KubeModel):
    """Object metadata."""

    name: str
    namespace: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)


class Container(KubeModel):
    """Container spec."""

    name: str
    image: str = ""

    @property
    def repository(self) -> str:
        return split_image(self.image)[0]

    @property
    def tag(self) -> str:
        return split_image(self.image)[1]


class ContainerState(KubeModel):
    """Container state; at most one of the branches is set."""

    running: Optional[dict[str, Any]] = None
    waiting: Optional[dict[str, Any]] = None
    terminated: Optional[dict[str, Any]] = None

    @property
    def kind(self) -> ContainerStateKind:
        if self.terminated is not None:
            return ContainerStateKind.TERMINATED
        if self.waiting is not None:
            return ContainerStateKind.WAITING
        if self.running is not None:
            return ContainerStateKind.RUNNING
        return ContainerStateKind.UNKNOWN

    @property
    def reason(self) -> Optional[str]:
        detail = self.waiting or self.terminated or {}
        return detail.get("reason")


class ContainerStatus(KubeModel):
    """Per-container status reported by the kubelet."""

    name: str = ""
    ready: bool = False
    restart_count: int = Field(default=0, alias="restartCount")
    state: ContainerState = Field(default_factory=ContainerState)


class PodSpec(KubeModel):
    """Pod spec (containers only)."""

    containers: list[Container] = Field(default_factory=list)


class PodStatus(KubeModel):
    """Pod status."""

    phase: PodPhase = PodPhase.UNKNOWN
    pod_ip: Optional[str] = Field(default=None, alias="podIP")
    host_ip: Optional[str] = Field(default=None, alias="hostIP")
    container_statuses: list[ContainerStatus] = Field(
        default_factory=list, alias="containerStatuses"
    )


class Pod(KubeModel):
    """Pod object."""

    metadata: ObjectMeta
    spec: PodSpec = Field(default_factory=PodSpec)
    status: PodStatus = Field(default_factory=PodStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @property
    def phase(self) -> PodPhase:
        return self.status.phase

    @property
    def images(self) -> list[str]:
        return [c.image for c in self.spec.containers]


class PodTemplateSpec(KubeModel):
    """Pod template of a replication controller."""

    spec: PodSpec = Field(default_factory=PodSpec)


class ReplicationControllerSpec(KubeModel):
    """Replication controller spec."""

    replicas: int = 1
    selector: Optional[Selector] = None
    template: Optional[PodTemplateSpec] = None


class ReplicationControllerStatus(KubeModel):
    """Replication controller status."""

    replicas: int = 0


class ReplicationController(KubeModel):
    """Replication controller object."""

    metadata: ObjectMeta
    spec: ReplicationControllerSpec = Field(default_factory=ReplicationControllerSpec)
    status: ReplicationControllerStatus = Field(
        default_factory=ReplicationControllerStatus
    )

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @property
    def desired_replicas(self) -> int:
        return self.spec.replicas

    @property
    def observed_replicas(self) -> int:
        return self.status.replicas

    @property
    def selector(self) -> Selector:
        return self.spec.selector or {}

    @property
    def containers(self) -> list[Container]:
        if self.spec.template is None:
            return []
        return self.spec.template.spec.containers

    @property
    def images(self) -> list[str]:
        return [c.image for c in self.containers]


class PodList(KubeModel):
    """List response for pods."""

    items: list[Pod] = Field(default_factory=list)


class ReplicationControllerList(KubeModel):
    """List response for replication controllers."""

    items: list[ReplicationController] = Field(default_factory=list)
