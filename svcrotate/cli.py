"""svcrotate CLI — Command-line interface for credential rotation.

Commands:
    svcrotate farm generate     Generate a demo farm manifest
    svcrotate farm show         Display farm summary
    svcrotate rotate            Rotate secrets and propagate them
    svcrotate propagate         Re-push current secrets without rotating
    svcrotate passwords         Show stored secrets (read-only)
    svcrotate status            Show directory-sync status (read-only)
    svcrotate probe             Try a login with each stored secret
    svcrotate repair            Start stopped pools and services of managed accounts
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from svcrotate import __version__
from svcrotate.config import RotationConfig
from svcrotate.errors import ConfigurationError, IdentityNotFound
from svcrotate.farm.models import FarmManifest
from svcrotate.rotation.models import OperationCode, RotationState, RunReport

app = typer.Typer(
    name="svcrotate",
    help="🔑 svcrotate — Service account credential rotation",
    add_completion=False,
)

farm_app = typer.Typer(help="Manage farm manifests")
app.add_typer(farm_app, name="farm")

console = Console()

DEFAULT_FARM = Path("data/farm.json")

STATE_STYLES: dict[RotationState, str] = {
    RotationState.DONE: "green",
    RotationState.PARTIALLY_FAILED: "yellow",
    RotationState.FAILED: "red",
}


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _load_farm(path: Path) -> FarmManifest:
    if not path.exists():
        console.print(f"[red]Error:[/] Farm manifest not found: {path}")
        console.print("Run [bold]svcrotate farm generate[/] first.")
        raise typer.Exit(1)
    return FarmManifest.model_validate_json(path.read_text())


def _save_farm(manifest: FarmManifest, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.model_dump_json(indent=2))


def _load_config(path: Path | None) -> RotationConfig:
    if path is None:
        return RotationConfig()
    try:
        return RotationConfig.load(path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        raise typer.Exit(2)


def _configure_logging(operation: OperationCode, config: RotationConfig, verbose: bool) -> Path:
    """Send svcrotate logs to the console and to a transcript file."""
    transcript_dir = Path(config.transcript_dir)
    transcript_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    transcript = transcript_dir / f"svcrotate-{operation.value}-{stamp}.log"

    root = logging.getLogger("svcrotate")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)

    console_handler = RichHandler(
        console=Console(stderr=True), show_path=False, markup=False
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler = logging.FileHandler(transcript, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    root.addHandler(console_handler)
    root.addHandler(file_handler)
    return transcript


def _confirm(operation: OperationCode, yes: bool) -> None:
    """Require the operator to type YES before a mutating operation."""
    if yes:
        return
    console.print(
        f"[bold yellow]⚠ '{operation.value}' changes credentials across the farm.[/]"
    )
    answer = typer.prompt("Type YES to continue", default="", show_default=False)
    if answer.strip() != "YES":
        console.print("[red]Aborted.[/] Nothing was changed.")
        raise typer.Exit(1)


def _build(farm: Path, config_path: Path | None, no_progress: bool):
    from svcrotate.farm.simulated import SimulatedPlatform

    config = _load_config(config_path)
    if no_progress:
        config = config.model_copy(update={"show_progress": False})
    manifest = _load_farm(farm)
    return config, manifest, SimulatedPlatform(manifest)


# ---------------------------------------------------------------------------
# Farm commands
# ---------------------------------------------------------------------------


@farm_app.command("generate")
def farm_generate(
    app_servers: int = typer.Option(2, "--app-servers", "-a", help="Application servers"),
    web_servers: int = typer.Option(2, "--web-servers", "-w", help="Web front-end servers"),
    domain: str = typer.Option("CORP", "--domain", "-d", help="NetBIOS domain name"),
    seed: int = typer.Option(42, "--seed", help="Random seed for reproducibility"),
    output: Path = typer.Option(DEFAULT_FARM, "--output", "-o", help="Output path"),
) -> None:
    """Generate a demo farm manifest."""
    from svcrotate.farm.generator import FarmGenerator
    from svcrotate.farm.models import FarmConfig

    config = FarmConfig(
        domain=domain,
        num_app_servers=app_servers,
        num_web_servers=web_servers,
        seed=seed,
    )
    manifest = FarmGenerator(config).generate()
    _save_farm(manifest, output)
    _display_farm_summary(manifest, output)


@farm_app.command("show")
def farm_show(
    farm: Path = typer.Argument(DEFAULT_FARM, help="Path to the farm manifest JSON"),
) -> None:
    """Display a summary of an existing farm manifest."""
    _display_farm_summary(_load_farm(farm), farm)


# ---------------------------------------------------------------------------
# Rotation commands
# ---------------------------------------------------------------------------


def _run(
    operation: OperationCode,
    account: str | None,
    farm: Path,
    config_path: Path | None,
    yes: bool,
    no_progress: bool,
    verbose: bool,
) -> None:
    from svcrotate.rotation.orchestrator import RotationOrchestrator

    config, manifest, platform = _build(farm, config_path, no_progress)
    try:
        orchestrator = RotationOrchestrator(platform, config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        raise typer.Exit(2)

    _confirm(operation, yes)
    transcript = _configure_logging(operation, config, verbose)

    report = orchestrator.rotate(
        account, propagate_only=operation == OperationCode.PROPAGATE
    )
    if report.not_found:
        console.print(f"[yellow]Account not found:[/] {account}. Nothing was changed.")
        return

    _save_farm(manifest, farm)
    _display_report(report)
    console.print(f"\n📝 Transcript: [bold]{transcript}[/]")


@app.command("rotate")
def rotate(
    account: str = typer.Argument(None, help="Single account to rotate (default: all)"),
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Rotation config (YAML or JSON)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the YES confirmation"),
    no_progress: bool = typer.Option(False, "--no-progress", help="Hide the progress bar"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Generate new secrets, store them, and propagate them to the fleet."""
    _run(OperationCode.ROTATE, account, farm, config_path, yes, no_progress, verbose)


@app.command("propagate")
def propagate(
    account: str = typer.Argument(None, help="Single account to re-push (default: all)"),
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Rotation config (YAML or JSON)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the YES confirmation"),
    no_progress: bool = typer.Option(False, "--no-progress", help="Hide the progress bar"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Push the currently stored secrets to the fleet without rotating."""
    _run(OperationCode.PROPAGATE, account, farm, config_path, yes, no_progress, verbose)


@app.command("repair")
def repair(
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Rotation config (YAML or JSON)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the YES confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Start stopped worker pools and services that run as managed accounts."""
    from svcrotate.rotation.maintenance import repair_fleet

    config, manifest, platform = _build(farm, config_path, True)
    _confirm(OperationCode.REPAIR, yes)
    transcript = _configure_logging(OperationCode.REPAIR, config, verbose)

    result = repair_fleet(platform)
    _save_farm(manifest, farm)

    console.print(f"✅ Started {len(result.updated)} resource(s)")
    for entry in result.updated:
        console.print(f"  • {entry}")
    for failure in result.failures:
        console.print(f"  [red]✗[/] {failure.host}/{failure.resource}: {failure.error}")
    console.print(f"\n📝 Transcript: [bold]{transcript}[/]")


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------


@app.command("passwords")
def passwords(
    account: str = typer.Argument(None, help="Single account (default: all)"),
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
) -> None:
    """Show the secrets currently held by the credential store."""
    from svcrotate.farm.simulated import SimulatedPlatform
    from svcrotate.rotation.classifier import RoleClassifier
    from svcrotate.rotation.orchestrator import RotationOrchestrator

    platform = SimulatedPlatform(_load_farm(farm))
    targets = RotationOrchestrator.resolve_scope(platform.list_identities(), account)
    if account and not targets:
        console.print(f"[yellow]Account not found:[/] {account}")
        return

    classifier = RoleClassifier()
    table = Table(title="Managed Accounts", show_header=True)
    table.add_column("Account", style="bold")
    table.add_column("Role")
    table.add_column("Password")
    for identity in targets:
        table.add_row(
            identity, classifier.classify(identity).value, platform.read_secret(identity)
        )
    console.print(table)


@app.command("status")
def status(
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
) -> None:
    """Show directory-sync service status."""
    from svcrotate.farm.simulated import SimulatedPlatform
    from svcrotate.rotation.maintenance import sync_status

    instances = sync_status(SimulatedPlatform(_load_farm(farm)))
    if not instances:
        console.print("[yellow]No directory-sync instances found.[/]")
        return

    table = Table(title="Directory Sync", show_header=True)
    table.add_column("Host", style="bold")
    table.add_column("Status")
    table.add_column("Account")
    for inst in instances:
        table.add_row(inst.host, inst.status.value, inst.account)
    console.print(table)


@app.command("probe")
def probe(
    account: str = typer.Argument(None, help="Single account (default: all)"),
    farm: Path = typer.Option(DEFAULT_FARM, "--farm", "-f", help="Farm manifest JSON"),
) -> None:
    """Attempt a login with each stored secret."""
    from svcrotate.farm.simulated import SimulatedPlatform
    from svcrotate.rotation.maintenance import probe_logins

    platform = SimulatedPlatform(_load_farm(farm))
    try:
        results = probe_logins(platform, account)
    except IdentityNotFound:
        console.print(f"[yellow]Account not found:[/] {account}")
        return

    table = Table(title="Login Probe", show_header=True)
    table.add_column("Account", style="bold")
    table.add_column("Result")
    for res in results:
        table.add_row(res.identity, "[green]✓ ok[/]" if res.success else "[red]✗ failed[/]")
    console.print(table)


@app.command("version")
def version() -> None:
    """Show the svcrotate version."""
    console.print(f"svcrotate v{__version__}")


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def _display_report(report: RunReport) -> None:
    table = Table(title=f"Run Report — {report.operation.value}", show_header=True)
    table.add_column("Account", style="bold")
    table.add_column("Role")
    table.add_column("State")
    table.add_column("Writes", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Failures", justify="right")

    for outcome in report.outcomes:
        style = STATE_STYLES.get(outcome.state, "white")
        updated = sum(len(r.updated) for r in outcome.results)
        state = outcome.state.value
        if outcome.timed_out:
            state += " ⏱"
        table.add_row(
            outcome.identity,
            outcome.role.value,
            f"[{style}]{state}[/]",
            str(outcome.write_cycles),
            str(updated),
            str(len(outcome.failures)),
        )
    console.print(table)

    failed = report.failed_targets()
    if failed:
        fail_table = Table(title="Failed Targets", show_header=True)
        fail_table.add_column("Account", style="bold")
        fail_table.add_column("Host")
        fail_table.add_column("Subsystem")
        fail_table.add_column("Resource")
        fail_table.add_column("Error", style="red")
        for identity, failure in failed:
            fail_table.add_row(
                identity, failure.host, failure.subsystem, failure.resource, failure.error
            )
        console.print(fail_table)


def _display_farm_summary(manifest: FarmManifest, path: Path) -> None:
    panel_text = (
        f"[bold]Domain:[/] {manifest.domain}\n"
        f"[bold]Hosts:[/] {len(manifest.hosts)} | [bold]Accounts:[/] {len(manifest.accounts)}\n"
        f"[bold]Service applications:[/] {len(manifest.service_applications)} | "
        f"[bold]Secure store targets:[/] {len(manifest.secure_store)}\n"
        f"[bold]Pending jobs:[/] {len(manifest.jobs)}\n"
        f"[bold]Saved to:[/] {path}"
    )
    console.print(Panel(panel_text, title="🔑 svcrotate Farm", border_style="green"))

    table = Table(title="Hosts")
    table.add_column("Host", style="bold")
    table.add_column("Role")
    table.add_column("Reachable")
    table.add_column("Services", justify="right")
    table.add_column("Tasks", justify="right")
    table.add_column("Pools", justify="right")
    for host in manifest.hosts:
        table.add_row(
            host.hostname,
            host.role.value,
            "✓" if host.reachable else "✗",
            str(len(host.services)),
            str(len(host.tasks)),
            str(len(host.app_pools)),
        )
    console.print(table)


if __name__ == "__main__":
    app()
