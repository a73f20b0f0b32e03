"""kubetool command line interface."""

import logging
from typing import Callable, Optional

import click

from .cluster import ClusterClient
from .config import AvailabilityPolicy, Settings, get_settings
from .console import Presenter
from .errors import KubetoolError
from .rollout import RolloutOrchestrator

logger = logging.getLogger(__name__)

COMMAND_ALIASES = {
    "i": "info",
    "pods": "pod",
    "po": "pod",
}


class AliasedGroup(click.Group):
    """Group that resolves short command aliases."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx, args):
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name if cmd else None, cmd, args


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    level = logging.DEBUG if settings.verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run(ctx: click.Context, action: Callable[[RolloutOrchestrator], object]) -> None:
    """
    Run an action against a cluster client that is closed afterwards.

    Kubetool errors are reported and exit nonzero.

    Args:
        ctx: Click context holding settings and presenter
        action: Callable receiving the orchestrator
    """
    settings: Settings = ctx.obj["settings"]
    presenter: Presenter = ctx.obj["presenter"]
    try:
        with ClusterClient(settings) as client:
            action(RolloutOrchestrator(client, presenter, settings))
    except KubetoolError as e:
        logger.debug(f"{type(e).__name__}: {e}")
        presenter.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        presenter.error("interrupted")
        ctx.exit(130)


@click.group(cls=AliasedGroup, help="kubernetes bulk task executor.")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose log.")
@click.option("--namespace", default=None, help='Target namespace. "all" for all namespaces.')
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation.")
@click.option("-f", "--force", is_flag=True, help="Do not wait for pods to become stable.")
@click.option("--min-stable", type=float, default=None, help="Minimum stable pod ratio (default 0.8).")
@click.option("--strict", is_flag=True, help="Require every replica to be available.")
@click.option("--kubeconfig", "kubeconfig_path", default=None, help="Path to kubeconfig file.")
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.pass_context
def cli(ctx, verbose, namespace, yes, force, min_stable, strict, kubeconfig_path, context):
    overrides = {
        "verbose": verbose,
        "namespace": namespace,
        "yes": yes,
        "force": force,
        "min_stable": min_stable,
        "kubeconfig_path": kubeconfig_path,
        "context": context,
    }
    if strict:
        overrides["availability_policy"] = AvailabilityPolicy.STRICT
    settings = get_settings().model_copy(
        update={k: v for k, v in overrides.items() if v is not None and v is not False}
    )
    configure_logging(settings)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj.setdefault("presenter", Presenter())


@cli.command(help="Print cluster & version info about cluster.")
@click.pass_context
def info(ctx):
    run(ctx, lambda o: o.print_info())


@cli.command(help="Print all rc.")
@click.pass_context
def rc(ctx):
    run(ctx, lambda o: o.print_controllers())


@cli.command(help="Print all pods.")
@click.option("--rc", "rc_name", default=None, help="rc name for pod target.")
@click.pass_context
def pod(ctx, rc_name):
    run(ctx, lambda o: o.print_pods(rc_name))


@cli.command(help="Reload all pods in rc.")
@click.argument("name")
@click.option("--interval", type=int, default=None, help="Interval seconds between pods.")
@click.option("-1", "--one", "only_one", is_flag=True, help="Reload only 1 pod.")
@click.pass_context
def reload(ctx, name, interval, only_one):
    run(ctx, lambda o: o.reload(name, interval, only_one or None))


@cli.command(help="Update image version of rc.")
@click.argument("name")
@click.argument("version")
@click.option("-c", "--container", default="", help="Target container name. Default is first container in defs.")
@click.option("--reload", "reload_after", is_flag=True, help="Reload pods after update.")
@click.option("-1", "--one", "only_one", is_flag=True, help="Reload only 1 pod after update.")
@click.option("--interval", type=int, default=None, help="Reloading interval after update.")
@click.pass_context
def update(ctx, name, version, container, reload_after, only_one, interval):
    def action(o: RolloutOrchestrator):
        o.update(name, container, version)
        if reload_after:
            o.reload(name, interval, only_one or None)

    run(ctx, action)


@cli.command("fix-version", help="Destroy all pods whose images differ from the rc.")
@click.argument("name")
@click.option("--interval", type=int, default=None, help="Reloading interval.")
@click.pass_context
def fix_version(ctx, name, interval):
    run(ctx, lambda o: o.fix_version(name, interval))


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
