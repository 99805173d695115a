"""
EasyGCE — CLI entrypoint.

Usage:
    easygce --help
    easygce diagnose -p my-project
    easygce clipboard -p my-project -n my-vm
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from easygce import __version__
from easygce.core.observability.logging_config import resolve_level, setup_logging

_STATE_MARKS = {
    "present": ("✓", "green"),
    "missing": ("✗", "red"),
    "error": ("!", "yellow"),
}

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group()
@click.version_option(version=__version__, prog_name="easygce")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to easygce.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """EasyGCE — keep a GCE remote-desktop VM in its desired state."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("EASYGCE_LOG_LEVEL")),
        log_file=os.environ.get("EASYGCE_LOG_FILE"),
        log_file_level=os.environ.get("EASYGCE_LOG_FILE_LEVEL"),
    )


# ── Shared options ──────────────────────────────────────────────


def target_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options every host-facing command accepts."""
    options = [
        click.option("--project", "-p", default=None, help="GCE project (or EASYGCE_PROJECT)."),
        click.option("--name", "-n", "vm_name", default=None, help="VM name (default: auto-detect)."),
        click.option("--zone", "-z", default=None, help="GCE zone (default: us-east1-c)."),
        click.option("--ssh-key", "-k", default=None, help="Private key for ssh."),
        click.option("--ssh-user", "-u", default=None, help="Remote login user."),
        click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."),
        click.option("--mock", is_flag=True, help="Use mock adapters (no gcloud or ssh)."),
        click.option("--no-audit", is_flag=True, help="Do not append to the audit ledger."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _load_settings(ctx: click.Context, overrides: dict[str, Any]):
    """Load Settings for this invocation, exiting 1 on a config error."""
    from easygce.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(path=ctx.obj.get("config_path"), overrides=overrides)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _target_overrides(
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
) -> dict[str, Any]:
    return {
        "project": project,
        "vm_name": vm_name,
        "zone": zone,
        "ssh.key_path": ssh_key,
        "ssh.user": ssh_user,
    }


def _print_report(ctx: click.Context, result: Any, title: str, mock: bool) -> None:
    """Render a RunResult: target, one line per check, summary."""
    report = result.report
    assert report is not None

    mode_label = "[mock] " if mock else ""
    fix_label = " (fix)" if report.auto_fix else ""
    click.secho(f"\n🔍 {mode_label}{title}{fix_label}", fg="cyan", bold=True)
    if result.target is not None:
        address = f" → {result.target.address}" if result.target.address else ""
        click.echo(f"   Target: {result.target.label}{address}")
    if result.started:
        click.secho("   ▶ Started the stopped VM before checking", fg="yellow")
    click.echo()

    for check in report.results:
        mark, color = _STATE_MARKS.get(check.state.value, ("?", "white"))
        click.secho(f"   {mark} {check.name} ", fg=color, nl=False)
        details = check.description
        if check.remediation_attempted:
            details += f"  [fix: {check.remediation.value}]"
        click.echo(details)
        if check.error:
            click.echo(f"     │ {check.error}")

    click.echo()
    status_color = _STATUS_COLORS.get(report.status, "white")
    click.secho(
        f"   Result: {report.present}/{report.total} present",
        fg=status_color,
        bold=True,
    )
    if report.remediated:
        click.echo(f"   Fixed: {report.remediated}")
    if ctx.obj.get("verbose") and result.audit_path:
        click.echo(f"   Audit: {result.audit_path}")
    click.echo()


def _run_suite_command(
    ctx: click.Context,
    suite: str,
    title: str,
    overrides: dict[str, Any],
    auto_fix: bool | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    epilogue: Callable[[Any, Any], None] | None = None,
) -> None:
    from easygce.core.use_cases.run import run_suite

    settings = _load_settings(ctx, overrides)
    result = run_suite(
        suite,
        settings,
        auto_fix=auto_fix,
        mock_mode=mock,
        audit=not no_audit,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    _print_report(ctx, result, title, mock)
    if epilogue is not None:
        epilogue(result, settings)
    sys.exit(result.exit_code)


def _print_connection_summary(result: Any, settings: Any) -> None:
    """Connection lines for the diagnosed VM, plus a hint to fix."""
    from easygce.core.use_cases.connect import connection_summary

    target = result.target
    if target is None or not target.address:
        return

    click.secho("   🔗 Connection commands:", fg="cyan")
    for label, line in connection_summary(settings, target.address):
        click.echo(f"     {label + ':':<5} {line}")
    if result.report is not None and not result.report.clean and not result.report.auto_fix:
        click.echo()
        click.echo(f"   Re-run with fixes: easygce diagnose -p {settings.project} -n {target.name} --fix")
    click.echo()


# ── Suite commands ──────────────────────────────────────────────


@cli.command()
@target_options
@click.option("--fix", "-f", is_flag=True, help="Apply fixes for missing capabilities.")
@click.pass_context
def diagnose(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    fix: bool,
) -> None:
    """Diagnose the remote-desktop stack on the VM.

    Examples:

        easygce diagnose -p my-project

        easygce diagnose -p my-project -n my-vm --fix
    """
    _run_suite_command(
        ctx,
        "remote-desktop",
        "Remote desktop diagnosis",
        _target_overrides(project, vm_name, zone, ssh_key, ssh_user),
        auto_fix=fix,
        as_json=as_json,
        mock=mock,
        no_audit=no_audit,
        epilogue=_print_connection_summary,
    )


@cli.command()
@target_options
@click.option("--fix", "-f", is_flag=True, help="Create missing firewall rules.")
@click.option("--network", default=None, help="VPC network to audit (default: default).")
@click.pass_context
def firewall(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    fix: bool,
    network: str | None,
) -> None:
    """Audit VPC firewall rules for the remote-desktop ports."""
    from easygce.adapters.registry import build_adapters
    from easygce.core.use_cases.run import firewall_inventory, run_suite

    overrides = _target_overrides(project, vm_name, zone, ssh_key, ssh_user)
    overrides["firewall.network"] = network
    settings = _load_settings(ctx, overrides)

    adapters = build_adapters(settings, mock_mode=mock)
    result = run_suite("firewall", settings, auto_fix=fix, adapters=adapters, audit=not no_audit)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    _print_report(ctx, result, f"Firewall audit — network {settings.firewall.network}", mock)

    if ctx.obj.get("verbose"):
        inventory = firewall_inventory(settings, adapters)
        if inventory.error:
            click.secho(f"   ⚠️  {inventory.error}", fg="yellow")
        else:
            click.secho("   📋 Firewall rules:", fg="cyan")
            for rule in inventory.rules:
                state = " (disabled)" if rule.disabled else ""
                click.echo(
                    f"     • {rule.name} [{rule.network}] {rule.direction} "
                    f"{rule.ports_label}{state}"
                )
            if inventory.hosts:
                click.echo()
                click.secho("   🏷  VM network tags:", fg="cyan")
                for host in inventory.hosts:
                    tags = ", ".join(host.tags) if host.tags else "(none)"
                    click.echo(f"     • {host.name}: {tags}")
            click.echo()

    sys.exit(result.exit_code)


@cli.command()
@target_options
@click.option("--check-only", is_flag=True, help="Report without applying fixes.")
@click.pass_context
def clipboard(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    check_only: bool,
) -> None:
    """Enable clipboard sharing over RDP and VNC."""
    _run_suite_command(
        ctx,
        "clipboard",
        "Clipboard sharing",
        _target_overrides(project, vm_name, zone, ssh_key, ssh_user),
        auto_fix=not check_only,
        as_json=as_json,
        mock=mock,
        no_audit=no_audit,
    )


@cli.command()
@target_options
@click.option("--bucket", default=None, help="Bucket name (default: <project>-easygce-downloads).")
@click.option("--path", "downloads_path", default=None, help="Mount point on the VM.")
@click.option("--check-only", is_flag=True, help="Report without applying fixes.")
@click.pass_context
def downloads(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    bucket: str | None,
    downloads_path: str | None,
    check_only: bool,
) -> None:
    """Mount a Cloud Storage bucket as the desktop's Downloads folder."""
    overrides = _target_overrides(project, vm_name, zone, ssh_key, ssh_user)
    overrides["downloads.bucket"] = bucket
    overrides["downloads.path"] = downloads_path
    _run_suite_command(
        ctx,
        "downloads",
        "Cloud Storage downloads",
        overrides,
        auto_fix=not check_only,
        as_json=as_json,
        mock=mock,
        no_audit=no_audit,
    )


@cli.command()
@target_options
@click.option("--check-only", is_flag=True, help="Report without applying fixes.")
@click.pass_context
def chrome(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    check_only: bool,
) -> None:
    """Install Google Chrome for the desktop user."""
    _run_suite_command(
        ctx,
        "chrome",
        "Google Chrome",
        _target_overrides(project, vm_name, zone, ssh_key, ssh_user),
        auto_fix=not check_only,
        as_json=as_json,
        mock=mock,
        no_audit=no_audit,
    )


# ── Provision / connect ─────────────────────────────────────────


@cli.command()
@target_options
@click.option("--machine-type", "-m", default=None, help="Machine type (default: n1-standard-2).")
@click.option("--disk-size", default=None, help="Boot disk size (default: 30GB).")
@click.option("--no-wait", is_flag=True, help="Do not wait for the VM and SSH.")
@click.pass_context
def provision(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    machine_type: str | None,
    disk_size: str | None,
    no_wait: bool,
) -> None:
    """Create the SSH key, service account, firewall rules and VM.

    Examples:

        easygce provision -p my-project

        easygce provision -p my-project -n desk -m e2-standard-4
    """
    from easygce.core.use_cases.provision import provision_vm

    overrides = _target_overrides(project, vm_name, zone, ssh_key, ssh_user)
    overrides["provision.machine_type"] = machine_type
    overrides["provision.boot_disk_size"] = disk_size
    settings = _load_settings(ctx, overrides)

    result = provision_vm(settings, mock_mode=mock, audit=not no_audit, wait=not no_wait)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.report is not None:
        from easygce.core.use_cases.run import RunResult

        shown = RunResult(suite="provision", report=result.report, target=result.report.target)
        _print_report(ctx, shown, f"Provisioning {result.vm_name}", mock)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if result.target is not None:
        click.secho(f"   ✅ {result.vm_name} is ready", fg="green", bold=True)
        click.echo(f"     • External IP: {result.target.address or '(none)'}")
        click.echo(f"     • Next: easygce diagnose -p {settings.project} -n {result.vm_name} --fix")
        click.echo()


@cli.command()
@target_options
@click.option(
    "--type",
    "-t",
    "connection_type",
    type=click.Choice(["rdp", "vnc", "web"]),
    default="vnc",
    show_default=True,
    help="Client to open.",
)
@click.option("--no-launch", is_flag=True, help="Check the port without opening a client.")
@click.pass_context
def connect(
    ctx: click.Context,
    project: str | None,
    vm_name: str | None,
    zone: str | None,
    ssh_key: str | None,
    ssh_user: str | None,
    as_json: bool,
    mock: bool,
    no_audit: bool,
    connection_type: str,
    no_launch: bool,
) -> None:
    """Start the VM if needed and open a remote-desktop client."""
    from easygce.core.catalog.remote_desktop import tcp_connect
    from easygce.core.use_cases.connect import connect as connect_vm

    settings = _load_settings(ctx, _target_overrides(project, vm_name, zone, ssh_key, ssh_user))

    result = connect_vm(
        settings,
        connection_type=connection_type,
        mock_mode=mock,
        launch=not (no_launch or mock),
        port_check=(lambda address, port: True) if mock else tcp_connect,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.target is not None
    click.echo()
    if result.started:
        click.secho(f"   ▶ Started {result.target.name}", fg="yellow")
    click.secho(f"   ✓ Port {result.port} is open on {result.target.address}", fg="green")
    if result.launched:
        click.secho(f"   🖥  Opened {result.url}", fg="cyan", bold=True)
    else:
        click.echo(f"   URL: {result.url}")
    click.echo()


# ── Introspection ───────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--project", "-p", default=None, help="GCE project used to render checks.")
@click.pass_context
def suites(ctx: click.Context, as_json: bool, project: str | None) -> None:
    """List the suites and the checks each one runs."""
    from easygce.core.catalog import SUITES

    settings = _load_settings(ctx, {"project": project})

    data = []
    for suite in SUITES.values():
        checks = suite.build(settings)
        data.append({
            "name": suite.name,
            "description": suite.description,
            "host_scoped": suite.host_scoped,
            "fix_by_default": suite.fix_by_default,
            "checks": [
                {
                    "name": c.name,
                    "description": c.description,
                    "category": c.category,
                    "probe": c.probe.describe(),
                    "fix": c.fix.describe() if c.fix else None,
                }
                for c in checks
            ],
        })

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    for suite_data in data:
        click.secho(f"\n📦 {suite_data['name']}", fg="cyan", bold=True)
        click.echo(f"   {suite_data['description']}")
        for check in suite_data["checks"]:
            fixable = "" if check["fix"] else "  (check only)"
            click.echo(f"     • {check['name']}{fixable}")
            if ctx.obj.get("verbose"):
                click.echo(f"       probe: {check['probe']}")
                if check["fix"]:
                    click.echo(f"       fix:   {check['fix']}")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--limit", "-n", default=10, show_default=True, type=int, help="Entries to show.")
@click.pass_context
def history(ctx: click.Context, as_json: bool, limit: int) -> None:
    """Show recent runs from the audit ledger."""
    from easygce.core.persistence.audit import AuditWriter

    settings = _load_settings(ctx, {})
    entries = AuditWriter(state_dir=settings.state_path).read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No runs recorded yet.")
        return

    click.echo()
    for entry in entries:
        color = _STATUS_COLORS.get(entry.status, "white")
        host = entry.host or f"project {entry.project}"
        fix = " fix" if entry.auto_fix else ""
        click.secho(f"   {entry.timestamp[:19]} ", nl=False)
        click.secho(f"{entry.status:<8}", fg=color, nl=False)
        click.echo(
            f"{entry.suite}{fix} on {host}  "
            f"{entry.checks_present}/{entry.checks_total} present"
        )
        for name in entry.missing:
            click.echo(f"     • missing: {name}")
        for name in entry.errors:
            click.echo(f"     • error: {name}")
    click.echo()


if __name__ == "__main__":
    cli()
