"""Pytest configuration and fixtures for kubetool tests."""

import io
from unittest.mock import MagicMock, Mock

import pytest
from kubernetes import client
from rich.console import Console

from kubetool import (
    ClusterClient,
    Container,
    ContainerState,
    ContainerStatus,
    ObjectMeta,
    Pod,
    PodPhase,
    Presenter,
    ReplicationController,
    RolloutOrchestrator,
    Settings,
)
from kubetool.models import (
    PodSpec,
    PodStatus,
    PodTemplateSpec,
    ReplicationControllerSpec,
    ReplicationControllerStatus,
)

SELECTOR = {"name": "web"}


def build_pod(
    name: str,
    phase: PodPhase = PodPhase.RUNNING,
    ready: bool = True,
    state: str = "running",
    images: tuple[str, ...] = ("nginx:1.9.12",),
) -> Pod:
    """Build a pod with one status per container image."""
    statuses = [
        ContainerStatus(
            name=f"c{i}",
            ready=ready,
            restart_count=0,
            state=ContainerState(**{state: {}}),
        )
        for i in range(len(images))
    ]
    return Pod(
        metadata=ObjectMeta(name=name, labels=SELECTOR),
        spec=PodSpec(containers=[Container(name=f"c{i}", image=img) for i, img in enumerate(images)]),
        status=PodStatus(
            phase=phase,
            pod_ip="10.0.0.1",
            host_ip="192.168.0.1",
            container_statuses=statuses,
        ),
    )


def build_rc(
    name: str = "web",
    desired: int = 2,
    observed: int | None = None,
    images: tuple[str, ...] = ("nginx:1.9.12",),
) -> ReplicationController:
    """Build a replication controller selecting ``name=web``."""
    return ReplicationController(
        metadata=ObjectMeta(name=name),
        spec=ReplicationControllerSpec(
            replicas=desired,
            selector=dict(SELECTOR),
            template=PodTemplateSpec(
                spec=PodSpec(
                    containers=[Container(name=f"c{i}", image=img) for i, img in enumerate(images)]
                )
            ),
        ),
        status=ReplicationControllerStatus(replicas=desired if observed is None else observed),
    )


@pytest.fixture
def make_pod():
    """Factory for pods."""
    return build_pod


@pytest.fixture
def make_rc():
    """Factory for replication controllers."""
    return build_rc


@pytest.fixture
def settings():
    """Settings that skip confirmation and ignore the environment."""
    return Settings(_env_file=None, yes=True)


@pytest.fixture
def presenter():
    """Presenter writing to an in-memory buffer."""
    console = Console(file=io.StringIO(), width=200, color_system=None)
    return Presenter(console)


@pytest.fixture
def output(presenter):
    """Text written to the presenter so far."""
    return lambda: presenter.console.file.getvalue()


@pytest.fixture
def mock_cluster_client():
    """Mock cluster client for testing."""
    mock_client = MagicMock(spec=ClusterClient)
    mock_client.current_context.return_value = "test-context"
    return mock_client


@pytest.fixture
def sleep():
    """Recorded sleep."""
    return Mock()


@pytest.fixture
def orchestrator(mock_cluster_client, presenter, settings, sleep):
    """Rollout orchestrator over the mock client."""
    return RolloutOrchestrator(mock_cluster_client, presenter, settings, sleep=sleep)


@pytest.fixture
def mock_core_v1():
    """Mock CoreV1Api."""
    return MagicMock(spec=client.CoreV1Api)


@pytest.fixture
def mock_version_api():
    """Mock VersionApi."""
    return MagicMock(spec=client.VersionApi)
