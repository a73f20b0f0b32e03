"""Rollout controller: availability-preserving replacement of RC pods."""

import json
import logging
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from rich.markup import escape

from .availability import AvailabilityReport, controller_available, pod_available
from .cluster import ClusterClient
from .config import Settings
from .console import Presenter
from .errors import ContainerNotFoundError, EmptySetError, StabilityTimeoutError, UserAbortError
from .models import Container, ContainerStateKind, Pod, ReplicationController, split_image

logger = logging.getLogger(__name__)

# About a minute for recreated pods to become available.
POLL_ATTEMPTS = 10
POLL_INTERVAL_SECONDS = 5


class RolloutPhase(str, Enum):
    """Phase of a single rollout invocation."""

    FETCHING = "fetching"
    PLANNING = "planning"
    CONFIRMING = "confirming"
    DELETING_UNHEALTHY = "deleting_unhealthy"
    CONVERGING = "converging"
    CYCLING_HEALTHY = "cycling_healthy"
    DONE = "done"
    ABORTED = "aborted"


def image_patch(container_name: str, image: str) -> str:
    """Build the merge-patch that replaces one container's image."""
    return json.dumps(
        {"spec": {"template": {"spec": {"containers": [{"name": container_name, "image": image}]}}}},
        separators=(",", ":"),
    )


def pick_container(rc: ReplicationController, container_name: str = "") -> Container:
    """
    Pick a container from the controller's pod template.

    Args:
        rc: Replication controller
        container_name: Container name; empty picks the first container

    Returns:
        Container spec

    Raises:
        ContainerNotFoundError: If no container matches
    """
    containers = rc.containers
    if not container_name:
        if not containers:
            raise ContainerNotFoundError("<first>")
        return containers[0]
    for container in containers:
        if container.name == container_name:
            return container
    raise ContainerNotFoundError(container_name)


def outdated_pods(rc: ReplicationController, pods: Iterable[Pod]) -> list[Pod]:
    """Pods whose image list differs from the controller's template."""
    expected = rc.images
    return [pod for pod in pods if pod.images != expected]


class RolloutOrchestrator:
    """
    Sequences pod replacement for a replication controller.

    Pods are only ever deleted; the controller recreates them. Unavailable
    pods go first and all at once, then available pods one at a time, each
    deletion followed by a wait until the controller is stable again. A
    failed wait aborts the run and leaves already deleted pods deleted.
    """

    def __init__(
        self,
        client: ClusterClient,
        presenter: Presenter,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rollout orchestrator.

        Args:
            client: Cluster client
            presenter: Output sink and confirmation prompt
            settings: Runtime settings
            sleep: Sleep function used for polling and pacing
        """
        self.client = client
        self.presenter = presenter
        self.settings = settings
        self.sleep = sleep
        self.phase: Optional[RolloutPhase] = None

    def _enter(self, phase: RolloutPhase) -> None:
        logger.debug(f"rollout phase {self.phase} -> {phase.value}")
        self.phase = phase

    def print_context(self) -> None:
        """Print the active kubeconfig context."""
        self.presenter.log("context ->", f"[yellow]{escape(self.client.current_context())}[/yellow]")

    def print_info(self) -> None:
        """Print context and client/server versions."""
        client_version, server_version = self.client.versions()
        self.print_context()
        self.presenter.log("client version :", f"[green]{escape(client_version)}[/green]")
        self.presenter.log("server version :", f"[blue]{escape(server_version)}[/blue]")

    def print_controllers(self) -> None:
        """Print replication controllers with their images."""
        rows = []
        for rc in self.client.list_controllers():
            if rc.spec.template is None:
                continue
            for container in rc.containers:
                repository, tag = split_image(container.image)
                rows.append(
                    [rc.name, f"{rc.observed_replicas}/{rc.desired_replicas}", repository, tag]
                )
        self.presenter.table(["NAME", "REPLICAS", "IMAGE", "VERSION"], rows)

    def print_pods(self, rc_name: Optional[str] = None) -> None:
        """
        Print pods with container state and images.

        Args:
            rc_name: Only pods labeled ``name=<rc_name>``
        """
        selector = {"name": rc_name} if rc_name else None
        rows = []
        for pod in self.client.list_pods(selector):
            statuses = pod.status.container_statuses
            for i, container in enumerate(pod.spec.containers):
                status = statuses[i] if i < len(statuses) else None
                state = status.state.kind if status else ContainerStateKind.UNKNOWN
                repository, tag = split_image(container.image)
                rows.append(
                    [
                        pod.name,
                        state.value.capitalize(),
                        str(status.restart_count if status else 0),
                        pod.status.pod_ip or "",
                        pod.status.host_ip or "",
                        repository,
                        tag,
                    ]
                )
        self.presenter.table(
            ["NAME", "STATUS", "R", "POD IP", "NODE IP", "IMAGE", "VERSION"], rows
        )

    def reload(
        self, name: str, interval: Optional[int] = None, only_one: Optional[bool] = None
    ) -> list[str]:
        """
        Reload all pods (or one pod) of a replication controller.

        Args:
            name: Replication controller name
            interval: Seconds between healthy pod deletions (settings when None)
            only_one: Reload only the first pod (settings when None)

        Returns:
            Names of deleted pods

        Raises:
            EmptySetError: If the controller has no pods
        """
        if only_one is None:
            only_one = self.settings.only_one
        if only_one:
            self.presenter.log("reloading [magenta]1[/magenta] pod in replication controller.")
        else:
            self.presenter.log("reloading [red]all[/red] pods in replication controller.")

        self._enter(RolloutPhase.FETCHING)
        rc = self.client.get_controller(name)
        pods = self.client.list_pods(rc.selector, namespace=rc.namespace)

        self._enter(RolloutPhase.PLANNING)
        if not pods:
            raise EmptySetError(name)
        # API order, not guaranteed stable between calls
        if only_one:
            pods = pods[:1]

        self.print_context()
        self.presenter.log("rc      :", f"[blue]{escape(name)}[/blue]")
        self._print_targets(pods)
        self._confirm("continue?")
        return self.replace_pods(rc, pods, interval)

    def update(self, name: str, container_name: str, new_tag: str) -> str:
        """
        Update the image tag of one container in the controller's template.

        Existing pods are not touched; reload them to pick up the change.

        Args:
            name: Replication controller name
            container_name: Container name; empty selects the first container
            new_tag: New image tag

        Returns:
            New image reference

        Raises:
            ContainerNotFoundError: If the container does not exist
        """
        self._enter(RolloutPhase.FETCHING)
        rc = self.client.get_controller(name)

        self._enter(RolloutPhase.PLANNING)
        container = pick_container(rc, container_name)
        repository, tag = split_image(container.image)
        new_image = f"{repository}:{new_tag}"

        self.print_context()
        self.presenter.log("RC       :", f"[green]{escape(name)}[/green]")
        self.presenter.log("Container:", f"[green]{escape(container.name)}[/green]")
        self.presenter.log(
            "Image    :", f"[magenta]{escape(repository)}[/magenta]:[yellow]{escape(tag)}[/yellow]"
        )
        self.presenter.log(
            "       ->:",
            f"[magenta]{escape(repository)}[/magenta]:[bold yellow]{escape(new_tag)}[/bold yellow]",
        )
        self._confirm("continue?")

        self.client.patch_controller(
            rc.name, image_patch(container.name, new_image), namespace=rc.namespace
        )
        logger.info(f"Patched RC {rc.name} container {container.name} to {new_image}")
        self._enter(RolloutPhase.DONE)
        self.presenter.success("Successfully patched")
        return new_image

    def fix_version(self, name: str, interval: Optional[int] = None) -> list[str]:
        """
        Delete pods whose images differ from the controller's template.

        Args:
            name: Replication controller name
            interval: Seconds between healthy pod deletions (settings when None)

        Returns:
            Names of deleted pods; empty when every pod is up to date
        """
        self._enter(RolloutPhase.FETCHING)
        rc = self.client.get_controller(name)
        all_pods = self.client.list_pods(rc.selector, namespace=rc.namespace)

        self._enter(RolloutPhase.PLANNING)
        pods = outdated_pods(rc, all_pods)
        if not pods:
            self._enter(RolloutPhase.DONE)
            self.presenter.success("all pods are up to date.")
            return []

        self.print_context()
        self.presenter.log("rc      :", f"[blue]{escape(name)}[/blue]")
        self._print_targets(pods)
        self._confirm("continue?")
        return self.replace_pods(rc, pods, interval)

    def replace_pods(
        self, rc: ReplicationController, pods: list[Pod], interval: Optional[int] = None
    ) -> list[str]:
        """
        Delete pods while keeping the controller available.

        Unavailable pods are deleted first without waiting between them,
        followed by one stability wait; no available pod is touched until
        that wait succeeds. Available pods are then deleted one by one, each
        followed by a stability wait and the pacing interval.

        Args:
            rc: Replication controller owning the pods
            pods: Pods to replace, in order
            interval: Seconds to sleep between available pod deletions

        Returns:
            Names of deleted pods

        Raises:
            StabilityTimeoutError: If the controller does not stabilize
            TransportError: If a cluster call fails
        """
        if interval is None:
            interval = self.settings.interval

        unhealthy = [pod for pod in pods if not pod_available(pod)]
        healthy = [pod for pod in pods if pod_available(pod)]
        ignore_names: list[str] = []

        try:
            if unhealthy:
                self._enter(RolloutPhase.DELETING_UNHEALTHY)
                for pod in unhealthy:
                    self.presenter.log(f"deleting pod [red]{escape(pod.name)}[/red]...")
                    self.client.delete_pod(pod.name, namespace=pod.namespace or rc.namespace)
                    ignore_names.append(pod.name)
                self._enter(RolloutPhase.CONVERGING)
                self.wait_for_stable(rc.name, ignore_names, namespace=rc.namespace)

            for i, pod in enumerate(healthy):
                self._enter(RolloutPhase.CYCLING_HEALTHY)
                self.presenter.log(f"deleting pod [green]{escape(pod.name)}[/green]...")
                self.client.delete_pod(pod.name, namespace=pod.namespace or rc.namespace)
                ignore_names.append(pod.name)

                self._enter(RolloutPhase.CONVERGING)
                self.wait_for_stable(rc.name, ignore_names, namespace=rc.namespace)

                if interval > 0 and i < len(healthy) - 1:
                    logger.debug(f"Sleeping {interval}s before next pod")
                    self.sleep(interval)
        except Exception:
            self._enter(RolloutPhase.ABORTED)
            logger.error(
                f"Rollout of RC {rc.name} aborted after deleting {len(ignore_names)} "
                f"of {len(pods)} pods"
            )
            raise

        self._enter(RolloutPhase.DONE)
        self.presenter.success("done reloading pods")
        return ignore_names

    def wait_for_stable(
        self, name: str, ignore_names: list[str], namespace: Optional[str] = None
    ) -> Optional[AvailabilityReport]:
        """
        Wait until the controller has enough stable pods.

        Polls up to ``POLL_ATTEMPTS`` times, ``POLL_INTERVAL_SECONDS`` apart.
        Returns immediately when ``force`` is set.

        Args:
            name: Replication controller name
            ignore_names: Deleted pods that must not count as stable
            namespace: Namespace of the controller

        Returns:
            Final availability report, or None when forced

        Raises:
            StabilityTimeoutError: If all polls fail
            TransportError: If re-fetching fails. The wait does not poll
                again; the client's own read retries are already spent
        """
        if self.settings.force:
            return None

        report: Optional[AvailabilityReport] = None
        for attempt in range(1, POLL_ATTEMPTS + 1):
            rc = self.client.get_controller(name, namespace=namespace)
            pods = self.client.list_pods(rc.selector, namespace=rc.namespace)
            report = controller_available(
                rc,
                pods,
                ignore_names,
                self.settings.stable_ratio,
                self.settings.availability_policy,
            )
            if report:
                return report
            self.presenter.log(
                f"waiting [blue]{report.missing}[/blue] more pod(s) become available. "
                f"([blue]{report.avail}[/blue]/[blue]{report.desired}[/blue])"
            )
            logger.debug(f"RC {name} not stable (attempt {attempt}/{POLL_ATTEMPTS})")
            self.sleep(POLL_INTERVAL_SECONDS)

        raise StabilityTimeoutError(
            name,
            available=report.avail if report is not None else 0,
            required=report.required if report is not None else 0,
            attempts=POLL_ATTEMPTS,
        )

    def _print_targets(self, pods: list[Pod]) -> None:
        for i, pod in enumerate(pods):
            if pod_available(pod):
                self.presenter.log(f"pod[{i:03d}]: [green]{escape(pod.name)}[/green]")
            else:
                self.presenter.log(
                    f"pod[{i:03d}]: [red]{escape(pod.name)}[/red] [bright_black](unavailable)[/bright_black]"
                )

    def _confirm(self, message: str) -> None:
        self._enter(RolloutPhase.CONFIRMING)
        if self.settings.yes:
            return
        if not self.presenter.confirm(message):
            self._enter(RolloutPhase.ABORTED)
            raise UserAbortError()
