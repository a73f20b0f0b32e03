"""Tests for the kubetool command line."""

import click
import pytest
from click.testing import CliRunner

from kubetool.cli import cli
from kubetool.errors import ControllerNotFoundError, TransportError


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, presenter, mock_cluster_client, monkeypatch):
    """Invoke the CLI against the mock cluster client."""
    monkeypatch.setattr("kubetool.cli.ClusterClient", lambda settings: mock_cluster_client)

    def close_on_exit(*exc_info):
        mock_cluster_client.close()
        return False

    mock_cluster_client.__enter__.return_value = mock_cluster_client
    mock_cluster_client.__exit__.side_effect = close_on_exit

    def _invoke(*args, input=None):
        return runner.invoke(cli, list(args), obj={"presenter": presenter}, input=input)

    return _invoke


def stable_pods(make_pod, count=2):
    """list_pods side effect returning a new generation of available pods per call."""
    generation = {"n": 0}

    def list_pods(selector=None, namespace=None):
        names = [f"g{generation['n']}-p{i}" for i in range(count)]
        generation["n"] += 1
        return [make_pod(name) for name in names]

    return list_pods


def test_reload_one(invoke, mock_cluster_client, make_rc, make_pod):
    """Test reloading a single pod from the command line."""
    mock_cluster_client.get_controller.return_value = make_rc(desired=2)
    mock_cluster_client.list_pods.side_effect = stable_pods(make_pod)

    result = invoke("-y", "reload", "web", "-1")

    assert result.exit_code == 0
    mock_cluster_client.delete_pod.assert_called_once_with("g0-p0", namespace=None)


def test_update_then_reload(invoke, mock_cluster_client, make_rc, make_pod):
    """Test --reload chains a reload after a successful patch."""
    mock_cluster_client.get_controller.return_value = make_rc(desired=2)
    mock_cluster_client.list_pods.side_effect = stable_pods(make_pod)

    result = invoke("-y", "update", "web", "2.0", "--reload", "--one")

    assert result.exit_code == 0
    mock_cluster_client.patch_controller.assert_called_once_with(
        "web",
        '{"spec":{"template":{"spec":{"containers":[{"name":"c0","image":"nginx:2.0"}]}}}}',
        namespace=None,
    )
    assert mock_cluster_client.delete_pod.call_count == 1


def test_update_without_reload(invoke, mock_cluster_client, make_rc):
    """Test update alone deletes nothing."""
    mock_cluster_client.get_controller.return_value = make_rc()

    result = invoke("-y", "update", "web", "2.0", "-c", "c0")

    assert result.exit_code == 0
    mock_cluster_client.delete_pod.assert_not_called()


def test_fix_version_up_to_date(invoke, mock_cluster_client, make_rc, make_pod, output):
    """Test fix-version with nothing to do."""
    mock_cluster_client.get_controller.return_value = make_rc()
    mock_cluster_client.list_pods.return_value = [make_pod("a")]

    result = invoke("fix-version", "web")

    assert result.exit_code == 0
    assert "all pods are up to date." in output()


def test_error_exit_status(invoke, mock_cluster_client, output):
    """Test errors are printed and exit nonzero."""
    mock_cluster_client.get_controller.side_effect = ControllerNotFoundError("nope")

    result = invoke("-y", "reload", "nope")

    assert result.exit_code == 1
    assert "replication controller not found: nope" in output()
    mock_cluster_client.close.assert_called_once()


def test_confirmation_declined(invoke, mock_cluster_client, make_rc, make_pod, output):
    """Test answering no aborts the reload."""
    mock_cluster_client.get_controller.return_value = make_rc()
    mock_cluster_client.list_pods.return_value = [make_pod("a")]

    result = invoke("reload", "web", input="n\n")

    assert result.exit_code == 1
    assert "aborted" in output()
    mock_cluster_client.delete_pod.assert_not_called()


def test_pod_alias(invoke, mock_cluster_client, make_pod, output):
    """Test the po alias and --rc filter."""
    mock_cluster_client.list_pods.return_value = [make_pod("web-1")]

    result = invoke("po", "--rc", "web")

    assert result.exit_code == 0
    mock_cluster_client.list_pods.assert_called_once_with({"name": "web"})
    assert "web-1" in output()


def test_info_alias(invoke, mock_cluster_client, output):
    """Test the i alias prints versions."""
    mock_cluster_client.versions.return_value = ("31.0.0", "v1.30.2")

    result = invoke("i")

    assert result.exit_code == 0
    assert "v1.30.2" in output()


def test_client_closed_after_command(invoke, mock_cluster_client, make_rc):
    """Test the cluster client is closed once the command finishes."""
    mock_cluster_client.get_controller.return_value = make_rc()

    result = invoke("-y", "update", "web", "2.0")

    assert result.exit_code == 0
    mock_cluster_client.close.assert_called_once()


def test_connection_failure_exit_status(runner, presenter, output, monkeypatch):
    """Test a client that cannot be built is reported like any other error."""

    def failing_client(settings):
        raise TransportError("Failed to initialize cluster connection: no kubeconfig")

    monkeypatch.setattr("kubetool.cli.ClusterClient", failing_client)

    result = runner.invoke(cli, ["info"], obj={"presenter": presenter})

    assert result.exit_code == 1
    assert "no kubeconfig" in output()


class TestAliasedGroup:
    """Test cases for command alias resolution."""

    def test_alias_resolves_to_command_name(self):
        """Test an alias resolves to the canonical command."""
        ctx = click.Context(cli)

        name, cmd, args = cli.resolve_command(ctx, ["po", "--rc", "web"])

        assert name == "pod"
        assert cmd.name == "pod"
        assert args == ["--rc", "web"]

    def test_unknown_command_resilient(self):
        """Test an unknown command resolves to nothing during completion."""
        ctx = click.Context(cli, resilient_parsing=True)

        name, cmd, args = cli.resolve_command(ctx, ["nope"])

        assert name is None
        assert cmd is None

    def test_unknown_command(self, runner):
        """Test an unknown command is a usage error."""
        result = runner.invoke(cli, ["nope"], obj={})

        assert result.exit_code == 2
        assert "No such command" in result.output
