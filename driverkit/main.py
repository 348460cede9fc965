"""
driverkit: CLI entrypoint.

Usage:
    python -m driverkit.main --help
    python -m driverkit.main plan manifest.yml
    python -m driverkit.main install manifest.yml
    python -m driverkit.main verify manifest.yml
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from driverkit import __version__
from driverkit.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="driverkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to driverkit.yml (default: auto-detect).",
)
@click.option(
    "--no-detect",
    is_flag=True,
    help="Use the configuration as given; skip host detection.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    no_detect: bool,
) -> None:
    """driverkit: place, install and verify driver package files."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["detect"] = not no_detect

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DRIVERKIT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DRIVERKIT_LOG_FILE"),
        log_file_level=os.environ.get("DRIVERKIT_LOG_FILE_LEVEL"),
        ui_level="ERROR" if quiet else os.environ.get("DRIVERKIT_UI_LOG_LEVEL"),
    )


def _load(ctx: click.Context, manifest: str):
    """Load config + manifest, or exit 1 with a message."""
    from driverkit.core.config.loader import ConfigError, load_config
    from driverkit.core.config.manifest import ManifestError, load_manifest
    from driverkit.core.services.environment import detect_environment

    try:
        config = load_config(ctx.obj.get("config_path"))
        package = load_manifest(Path(manifest))
    except (ConfigError, ManifestError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if ctx.obj.get("detect", True):
        config = detect_environment(config)
    return config, package


def _print_diagnostics(reporter) -> None:
    for diag in reporter.diagnostics:
        color = "red" if diag.level == "error" else "yellow"
        click.secho(f"   {diag.level.upper()}: {diag.message}", fg=color)


@cli.command()
@click.argument("manifest", type=click.Path(exists=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, manifest: str, as_json: bool) -> None:
    """Classify and resolve destinations without installing."""
    from driverkit.core.services.reporter import Reporter
    from driverkit.core.use_cases.install import plan_install

    config, package = _load(ctx, manifest)
    reporter = Reporter()
    result = plan_install(package, config, reporter)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not ctx.obj.get("quiet"):
        click.secho(f"\n📦 {package.name} {package.version}".rstrip(), fg="cyan", bold=True)
        for arch, variant in result.selected_abi.items():
            click.echo(f"   {arch}: {variant}")
        click.echo()
    for destination in result.installed:
        click.echo(f"   → {destination}")
    _print_diagnostics(reporter)


@cli.command()
@click.argument("manifest", type=click.Path(exists=False))
@click.option("--skip-verify", is_flag=True, help="Do not run post-install checks.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, manifest: str, skip_verify: bool, as_json: bool) -> None:
    """Install every file of MANIFEST."""
    from driverkit.core.services.reporter import Reporter
    from driverkit.core.use_cases.install import run_install

    config, package = _load(ctx, manifest)
    reporter = Reporter()
    result = run_install(package, config, reporter, run_verification=not skip_verify)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_diagnostics(reporter)
        if result.ok:
            click.secho(f"✅ Installed {len(result.installed)} files.", fg="green")
        else:
            click.secho(f"❌ {result.error}", fg="red")

    if not result.ok:
        sys.exit(1)


@cli.command()
@click.argument("manifest", type=click.Path(exists=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, manifest: str, as_json: bool) -> None:
    """Check an existing installation of MANIFEST."""
    from driverkit.core.services.reporter import Reporter
    from driverkit.core.use_cases.install import verify_install

    config, package = _load(ctx, manifest)
    reporter = Reporter()
    result = verify_install(package, config, reporter)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_diagnostics(reporter)
        if result.ok:
            click.secho("✅ Verification passed.", fg="green")
        else:
            click.secho(f"❌ {result.error}", fg="red")

    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
