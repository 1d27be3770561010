"""
devbox: CLI entrypoint.

Usage:
    devbox                  # full bootstrap (same as ``devbox run``)
    devbox run --dry-run
    devbox probe
    devbox reconcile
    devbox health
    devbox status
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devbox import __version__
from devbox.core.observability.logging_config import setup_logging

STATUS_COLORS = {
    "ok": "green",
    "partial": "yellow",
    "failed": "red",
    "fatal": "red",
    "interrupted": "yellow",
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Show per-step output.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to devbox.yml (default: DEVBOX_CONFIG or auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devbox: bootstrap a developer workstation.

    Without a sub-command, runs the full bootstrap.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DEVBOX_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("DEVBOX_LOG_FILE"),
        log_file_level=os.environ.get("DEVBOX_LOG_FILE_LEVEL"),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


def _load_config(ctx: click.Context, **overrides):
    """Build the run configuration; exit 2 on invalid configuration."""
    from devbox.core.config.loader import load_config
    from devbox.core.errors import ConfigError

    try:
        return load_config(ctx.obj.get("config_path"), **overrides)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)


def _print_receipts(report, verbose: bool) -> None:
    for receipt in report.receipts:
        timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
        if receipt.ok:
            click.secho(f"   ✓ {receipt.label}", fg="green", nl=False)
            click.echo(timing)
            if verbose and receipt.output:
                for line in receipt.output.split("\n")[:10]:
                    click.echo(f"     │ {line}")
        elif receipt.failed:
            color = "red" if receipt.required else "yellow"
            click.secho(f"   ✗ {receipt.label}", fg=color, nl=False)
            click.echo(timing)
            if receipt.error:
                for line in receipt.error.split("\n")[:5]:
                    click.echo(f"     │ {line}")
        else:
            click.secho(f"   ⊘ {receipt.label} ", fg="yellow", nl=False)
            click.echo(f"({receipt.output})")


def _print_report(ctx: click.Context, report, title: str) -> None:
    click.secho(f"\n⚡ {title}", fg="cyan", bold=True)
    if report.facts is not None:
        wsl = " (WSL)" if report.facts.is_wsl else ""
        manager = report.manager.value if report.manager else "none"
        click.echo(f"   Host: {report.facts.os_family.value}{wsl} | Manager: {manager}")
    click.echo()

    if report.fatal:
        click.secho(f"   ❌ {report.fatal}", fg="red")
    _print_receipts(report, ctx.obj.get("verbose", False))

    if report.warnings and not ctx.obj.get("quiet"):
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warning in report.warnings:
            click.echo(f"   • {warning}")

    click.echo()
    color = STATUS_COLORS.get(report.status, "white")
    click.secho(
        f"   Result: {report.status} ({report.succeeded} ok, "
        f"{report.skipped} skipped, {report.failed} failed)",
        fg=color,
        bold=True,
    )
    if report.interrupted:
        click.secho("   Interrupted; re-run to finish.", fg="yellow")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Report what would change; change nothing.")
@click.option("--mock", is_flag=True, help="Use mock package managers (no installs).")
@click.pass_context
def run(ctx: click.Context, as_json: bool = False, dry_run: bool = False, mock: bool = False) -> None:
    """Install packages, reconcile config files and run post steps.

    Examples:

        devbox run

        devbox run --dry-run

        INSTALL_NODE=0 REFRESH_STALE_BLOCKS=1 devbox run
    """
    from devbox.core.use_cases.bootstrap import run_bootstrap

    config = _load_config(ctx, dry_run=dry_run or None)
    try:
        report = run_bootstrap(config, mock_mode=mock)
    except KeyboardInterrupt:
        click.secho("\n⊘ Interrupted", fg="yellow", err=True)
        sys.exit(130)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(report.exit_code)

    mode_label = "[dry-run] " if config.dry_run else "[mock] " if mock else ""
    _print_report(ctx, report, f"{mode_label}bootstrap")
    sys.exit(report.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def probe(ctx: click.Context, as_json: bool) -> None:
    """Show what devbox detects on this host."""
    from devbox.core.use_cases.detect import run_probe

    config = _load_config(ctx)
    result = run_probe(config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.facts is not None else 2)

    if result.facts is None:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(2)

    facts = result.facts
    click.secho("\n🔍 Host", fg="cyan", bold=True)
    click.echo(f"   OS:       {facts.os_family.value} ({facts.system} {facts.release}, {facts.machine})")
    if facts.distro:
        click.echo(f"   Distro:   {facts.distro}")
    click.echo(f"   WSL:      {'yes' if facts.is_wsl else 'no'}")
    managers = ", ".join(sorted(m.value for m in facts.available_managers)) or "none"
    click.echo(f"   Managers: {managers}")
    if result.manager:
        click.secho(f"   Using:    {result.manager.value}", fg="green")
    else:
        click.secho(f"   ⚠️  {result.error}", fg="yellow")

    if ctx.obj.get("verbose"):
        click.echo()
        click.secho("   Binaries found:", bold=True)
        for name in sorted(facts.available_binaries):
            click.echo(f"     • {name}")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Report what would change; change nothing.")
@click.pass_context
def reconcile(ctx: click.Context, as_json: bool, dry_run: bool) -> None:
    """Reconcile managed config files only (no package installs)."""
    from devbox.core.use_cases.bootstrap import run_reconcile

    config = _load_config(ctx, dry_run=dry_run or None)
    try:
        report = run_reconcile(config)
    except KeyboardInterrupt:
        click.secho("\n⊘ Interrupted", fg="yellow", err=True)
        sys.exit(130)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(report.exit_code)

    _print_report(ctx, report, f"{'[dry-run] ' if config.dry_run else ''}reconcile")
    sys.exit(report.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def health(ctx: click.Context, as_json: bool) -> None:
    """Check that expected tools are installed."""
    from devbox.core.errors import FatalEnvironmentError
    from devbox.core.use_cases.detect import run_health

    config = _load_config(ctx)
    try:
        report = run_health(config)
    except FatalEnvironmentError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(report.exit_code)

    click.secho("\n🩺 Health check", fg="cyan", bold=True)
    if report.is_wsl:
        click.echo("   Environment: WSL")
    click.echo(f"   Package manager: {report.manager.value if report.manager else 'unknown'}")

    for group, results in report.groups().items():
        click.echo()
        click.secho(f"   {group}", bold=True)
        for result in results:
            if result.found:
                alt = f" ({result.found_as})" if result.found_as and result.found_as != result.check.label else ""
                click.secho(f"     ✓ {result.check.label}{alt}", fg="green")
            elif result.check.required:
                click.secho(f"     ✗ {result.check.label}", fg="red")
            else:
                click.secho(f"     ⊘ {result.check.label} (optional)", fg="yellow")

    click.echo()
    click.echo(f"   Missing required: {len(report.missing_required)}")
    click.echo(f"   Missing optional: {len(report.missing_optional)}")

    if report.hints:
        click.echo()
        click.secho("   Suggested install commands:", fg="yellow")
        for hint in report.hints:
            click.echo(f"     {hint}")

    click.echo()
    sys.exit(report.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--history", "-n", default=5, type=int, help="Number of audit entries to show.")
@click.pass_context
def status(ctx: click.Context, as_json: bool, history: int) -> None:
    """Show the last run and recent history."""
    from devbox.core.use_cases.status import get_status

    config = _load_config(ctx)
    result = get_status(config, history=history)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    record = result.record
    if record is None:
        click.secho("No runs recorded yet. Run `devbox` to bootstrap.", fg="yellow")
        return

    click.secho("\n📋 Last run", fg="cyan", bold=True)
    click.echo(f"   {record.command} {record.operation_id}")
    click.echo("   Status: ", nl=False)
    click.secho(f"{record.status} (exit {record.exit_code})", fg=STATUS_COLORS.get(record.status, "white"))
    if record.ended_at:
        click.echo(f"   At: {record.ended_at}")
    if record.manager:
        click.echo(f"   Manager: {record.manager}")
    if record.fatal:
        click.secho(f"   ❌ {record.fatal}", fg="red")

    failed = [s for s in record.steps if s.status == "failed"]
    if failed:
        click.echo()
        click.secho("   Failed steps:", fg="red")
        for step in failed:
            label = f"{step.step}:{step.target}" if step.target else step.step
            click.echo(f"     • {label}: {step.error}")

    if result.history:
        click.echo()
        click.secho("   History:", bold=True)
        for entry in reversed(result.history):
            click.echo(f"     {entry.timestamp}  {entry.command:<9} {entry.status}")
    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
