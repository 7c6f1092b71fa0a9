"""Provider CLI.

Usage:
    provider validate manifest.yaml          # Validate a manifest offline
    provider plan manifest.yaml              # Show what apply would change
    provider apply manifest.yaml             # Converge AWS on the manifest
    provider destroy                         # Delete everything in state
    provider import NAME KIND IMPORT_ID      # Adopt an existing resource

Settings come from the environment (see Config.from_env); the global
options below override them.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path

import click
from botocore.exceptions import BotoCoreError, ClientError

from .clients import AwsClients
from .config import Config, ConfigurationError
from .errors import ProviderError
from .main import install_signal_handlers, setup_logging
from .reconciler import Reconciler, ReconcileResult, ResourceChange
from .registry import AdapterRegistry, build_registry
from .resource import PlanAction
from .spec_loader import Manifest, ManifestLoadError, load_manifest
from .state import StateError, StateStore

PLAN_SYMBOLS = {
    PlanAction.CREATE: "+",
    PlanAction.UPDATE: "~",
    PlanAction.REPLACE: "-/+",
    PlanAction.DELETE: "-",
    PlanAction.NO_CHANGE: " ",
}


@dataclass
class Runtime:
    """Objects shared by one CLI invocation."""

    config: Config
    registry: AdapterRegistry
    cancel_event: threading.Event

    def load_state(self) -> StateStore:
        try:
            return StateStore.load(self.config.state_file)
        except StateError as e:
            raise click.ClickException(str(e)) from e

    def load_manifest(self, path: Path) -> Manifest:
        try:
            return load_manifest(path, self.registry)
        except ManifestLoadError as e:
            raise click.ClickException(str(e)) from e

    def reconciler(self, store: StateStore, *, dry_run: bool = False) -> Reconciler:
        return Reconciler(
            self.registry,
            store,
            dry_run=dry_run,
            cancel_event=self.cancel_event,
        )


def _runtime(ctx: click.Context) -> Runtime:
    """Build (once) the runtime from environment and global options."""
    if ctx.obj.get("runtime") is None:
        try:
            config = Config.from_env(**ctx.obj["overrides"])
        except ConfigurationError as e:
            raise click.ClickException(str(e)) from e

        setup_logging(config)

        cancel_event = threading.Event()
        install_signal_handlers(cancel_event)

        registry = build_registry(config, AwsClients(config), cancel_event)
        ctx.obj["runtime"] = Runtime(config=config, registry=registry, cancel_event=cancel_event)
    return ctx.obj["runtime"]


def _echo_changes(changes: list[ResourceChange], *, as_json: bool = False) -> None:
    if as_json:
        click.echo(json.dumps([c.to_dict() for c in changes], indent=2))
        return

    pending = [c for c in changes if c.action is not PlanAction.NO_CHANGE]
    if not pending:
        click.secho("No changes. Remote resources match the manifest.", fg="green")
        return

    for change in pending:
        line = f"  {PLAN_SYMBOLS[change.action]:>3} {change.name} ({change.kind})"
        if change.changed_fields:
            line += f": {', '.join(change.changed_fields)}"
        click.echo(line)

    counts = {action: 0 for action in PlanAction}
    for change in pending:
        counts[change.action] += 1
    click.echo(
        f"\nPlan: {counts[PlanAction.CREATE]} to create, {counts[PlanAction.UPDATE]} to update, "
        f"{counts[PlanAction.REPLACE]} to replace, {counts[PlanAction.DELETE]} to delete."
    )


def _report(operation: str, result: ReconcileResult) -> None:
    if result.dry_run:
        _echo_changes(result.changes)
        click.echo("Dry run, nothing was changed.")
        return

    if not result.success:
        raise click.ClickException(
            f"{operation.capitalize()} failed after {result.duration_seconds:.1f}s: {result.error}"
        )

    click.secho(
        f"{operation.capitalize()} complete: {result.created} created, {result.updated} updated, "
        f"{result.replaced} replaced, {result.deleted} deleted "
        f"({result.duration_seconds:.1f}s).",
        fg="green",
    )


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="provider")
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State file (default: $STATE_FILE or provider-state.json)",
)
@click.option("--region", default=None, help="AWS region (default: $AWS_REGION)")
@click.option("--log-level", default=None, help="Log level (default: $LOG_LEVEL or INFO)")
@click.pass_context
def cli(
    ctx: click.Context,
    state_file: Path | None,
    region: str | None,
    log_level: str | None,
) -> None:
    """Manage API Gateway v2, Amazon MQ and AppSync resources from a manifest.

    \b
    Quick Start:
        provider validate resources.yaml
        provider plan resources.yaml
        provider apply resources.yaml
    """
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "state_file": state_file,
        "region": region,
        "log_level": log_level,
    }


@cli.command()
@click.argument("manifest", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def validate(ctx: click.Context, manifest: Path) -> None:
    """Validate a manifest without calling AWS."""
    runtime = _runtime(ctx)
    loaded = runtime.load_manifest(manifest)
    click.secho(f"✓ {manifest}: {len(loaded.resources)} resource(s) valid", fg="green")


@cli.command()
@click.argument("manifest", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--no-refresh", is_flag=True, help="Plan against the state file as stored")
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_context
def plan(ctx: click.Context, manifest: Path, no_refresh: bool, as_json: bool) -> None:
    """Show the changes apply would make."""
    runtime = _runtime(ctx)
    loaded = runtime.load_manifest(manifest)
    reconciler = runtime.reconciler(runtime.load_state())

    try:
        changes = reconciler.plan(loaded, refresh=not no_refresh)
    except (ProviderError, ClientError, BotoCoreError) as e:
        raise click.ClickException(f"Plan failed: {e}") from e

    _echo_changes(changes, as_json=as_json)


@cli.command()
@click.argument("manifest", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Plan only (default: $DRY_RUN)")
@click.pass_context
def apply(ctx: click.Context, manifest: Path, dry_run: bool) -> None:
    """Create, update and delete resources to match the manifest."""
    runtime = _runtime(ctx)
    loaded = runtime.load_manifest(manifest)
    store = runtime.load_state()
    reconciler = runtime.reconciler(store, dry_run=dry_run or runtime.config.dry_run)

    _report("apply", reconciler.apply(loaded))


@cli.command()
@click.option("--dry-run", is_flag=True, help="List only (default: $DRY_RUN)")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def destroy(ctx: click.Context, dry_run: bool, yes: bool) -> None:
    """Delete every resource recorded in the state file."""
    runtime = _runtime(ctx)
    store = runtime.load_state()

    if len(store) == 0:
        click.echo("State is empty, nothing to destroy.")
        return

    dry_run = dry_run or runtime.config.dry_run
    reconciler = runtime.reconciler(store, dry_run=dry_run)
    if not (yes or dry_run):
        click.confirm(f"Destroy {len(store)} resource(s)?", abort=True)

    _report("destroy", reconciler.destroy())


@cli.command("import")
@click.argument("name")
@click.argument("kind")
@click.argument("import_id")
@click.pass_context
def import_cmd(ctx: click.Context, name: str, kind: str, import_id: str) -> None:
    """Adopt an existing AWS resource into state as NAME.

    \b
    IMPORT_ID formats:
        aws_apigatewayv2_stage      api_id/stage_name
        aws_appsync_resolver        api_id-type_name-field_name
        aws_appsync_function        api_id-function_id
        others                      the AWS identifier
    """
    runtime = _runtime(ctx)
    if kind not in runtime.registry:
        raise click.ClickException(
            f"Unknown resource kind '{kind}'. Known kinds: {runtime.registry.kinds()}"
        )

    reconciler = runtime.reconciler(runtime.load_state())
    try:
        state = reconciler.import_resource(name, kind, import_id)
    except (ProviderError, StateError, ClientError, BotoCoreError) as e:
        raise click.ClickException(f"Import failed: {e}") from e

    click.secho(f"✓ Imported {kind} {state.id} as {name}", fg="green")


if __name__ == "__main__":
    cli()
