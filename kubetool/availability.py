"""Availability checks for pods and replication controllers.

Everything here is pure: callers fetch the controller and its pods and pass
them in, so the rules can be tested without a cluster.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .config import AvailabilityPolicy, effective_stable_ratio
from .models import ContainerStateKind, Pod, PodPhase, ReplicationController


@dataclass
class AvailabilityReport:
    """Result of a controller availability check."""

    available: bool
    avail: int  # available pods counted
    required: int
    desired: int
    policy: AvailabilityPolicy = AvailabilityPolicy.RATIO

    def __bool__(self) -> bool:
        return self.available

    @property
    def missing(self) -> int:
        """Pods that still have to become available."""
        if self.available:
            return 0
        if self.policy == AvailabilityPolicy.STRICT:
            return max(self.required - self.avail, 1)
        return self.required - self.avail + 1


def pod_available(pod: Pod) -> bool:
    """
    Check whether a pod is serving.

    A pod is available when it is Running and every container is ready and
    in the running state. A pod without container statuses is unavailable.

    Args:
        pod: Pod to check

    Returns:
        True if available
    """
    if pod.phase != PodPhase.RUNNING:
        return False
    statuses = pod.status.container_statuses
    if not statuses:
        return False
    for status in statuses:
        if not status.ready:
            return False
        if status.state.kind != ContainerStateKind.RUNNING:
            return False
    return True


def required_stable(desired: int, min_stable_ratio: float) -> int:
    """Minimum stable pod count, clamped to [1, desired].

    The upper bound wins, so a controller scaled to zero requires zero.
    """
    ratio = effective_stable_ratio(min_stable_ratio)
    required = max(math.floor(desired * ratio), 1)
    return min(required, desired)


def controller_available(
    rc: ReplicationController,
    pods: list[Pod],
    ignore_names: Optional[Iterable[str]] = None,
    min_stable_ratio: float = 0.8,
    policy: AvailabilityPolicy = AvailabilityPolicy.RATIO,
) -> AvailabilityReport:
    """
    Check whether a replication controller can absorb another pod deletion.

    With the ratio policy the controller is available when strictly more
    than ``required_stable`` pods are available. The comparison is ``>``,
    not ``>=``: one pod of headroom is required before the next deletion.
    Pods named in ``ignore_names`` were just deleted and are not counted
    even if they still report as available.

    The strict policy is the legacy check: observed replicas, live pods
    and available pods must all equal the desired count.

    Args:
        rc: Replication controller
        pods: Pods matching the controller's selector
        ignore_names: Names of pods to leave out of the count
        min_stable_ratio: Minimum stable ratio (0 selects the default)
        policy: Availability policy

    Returns:
        AvailabilityReport, truthy when available
    """
    desired = rc.desired_replicas

    if policy == AvailabilityPolicy.STRICT:
        avail = sum(1 for pod in pods if pod_available(pod))
        available = (
            rc.observed_replicas == desired
            and len(pods) == desired
            and avail == len(pods)
        )
        return AvailabilityReport(
            available=available,
            avail=avail,
            required=desired,
            desired=desired,
            policy=policy,
        )

    ignored = set(ignore_names or ())
    required = required_stable(desired, min_stable_ratio)
    avail = sum(1 for pod in pods if pod.name not in ignored and pod_available(pod))
    return AvailabilityReport(
        available=avail > required,
        avail=avail,
        required=required,
        desired=desired,
        policy=policy,
    )
