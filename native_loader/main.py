"""
nativelib: CLI entrypoint.

Usage:
    python -m native_loader.main --help
    python -m native_loader.main platform --library foo
    python -m native_loader.main load foo --root dist/app.whl
    python -m native_loader.main workdir cleanup
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from native_loader import __version__
from native_loader.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


def _settings(ctx: click.Context):
    """Settings loaded once per invocation; exits on configuration errors."""
    if "settings" not in ctx.obj:
        from native_loader.core.config.loader import ConfigError, load_settings

        try:
            ctx.obj["settings"] = load_settings(ctx.obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    return ctx.obj["settings"]


def _build_loader(ctx: click.Context, roots: tuple[str, ...]):
    from native_loader.core.services.native_loader import NativeLoader
    from native_loader.core.services.resources import resolve_roots

    settings = _settings(ctx)
    if roots:
        return NativeLoader(settings, roots=resolve_roots(roots))
    return NativeLoader(settings)


@click.group()
@click.version_option(version=__version__, prog_name="nativelib")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to nativelib.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Native Loader: find, extract and load bundled native libraries."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    settings = _settings(ctx)
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, configured=settings.log_level),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--library", "-l", "library", default=None, help="Show the file name for this library.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def platform(ctx: click.Context, library: str | None, as_json: bool) -> None:
    """Show the detected host platform and naming conventions."""
    from native_loader.core.services.platform_id import PlatformIdentifier
    from native_loader.core.services.sysinfo import system_descriptor

    settings = _settings(ctx)
    identifier = PlatformIdentifier()
    current = identifier.current()

    data = {
        "os": identifier.os_name,
        "arch": identifier.arch_name,
        "platform": current.value,
        "supported": current.supported,
        "directory": current.directory_name,
        "descriptor": system_descriptor(settings.sysinfo),
    }
    if library:
        data["library"] = library
        data["file_name"] = identifier.library_file_name(library)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    color = "green" if current.supported else "yellow"
    click.secho(f"\n🖥️  {current.value}", fg=color, bold=True)
    click.echo(f"   OS:         {data['os']}")
    click.echo(f"   Arch:       {data['arch']}")
    click.echo(f"   Descriptor: {data['descriptor']}")
    if library:
        click.echo(f"   {library} → {data['file_name'] or '(no native library for this platform)'}")
    click.echo()


@cli.command()
@click.argument("name")
@click.option("--path", "-p", "paths", multiple=True, help="Extra search prefix (repeatable).")
@click.option("--root", "-r", "roots", multiple=True, help="Resource root: dir, zip or package:<name>.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def load(
    ctx: click.Context,
    name: str,
    paths: tuple[str, ...],
    roots: tuple[str, ...],
    as_json: bool,
) -> None:
    """Extract and load a packaged native library.

    Examples:

        nativelib load foo --root dist/app.whl

        nativelib load foo --path vendor/natives --json
    """
    with _build_loader(ctx, roots) as loader:
        result = loader.load_packaged(name, *paths)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.loaded else 1)

    if result.loaded:
        click.secho(f"✅ Loaded {name}", fg="green", bold=True)
        click.echo(f"   {result.path}")
        return

    if not result.platform.supported:
        click.secho(f"⚠️  No native library available for this platform ({name})", fg="yellow")
        sys.exit(1)

    click.secho(f"❌ Could not load {name} ({result.platform.value})", fg="red", bold=True)
    for failure in result.failures:
        click.echo(f"   • {failure.prefix} [{failure.stage}] {failure.error}")
    if not result.failures or ctx.obj.get("verbose"):
        click.echo("   Searched:")
        for prefix in result.prefixes_tried:
            click.echo(f"     {prefix}")
    sys.exit(1)


@cli.command("extract-registered")
@click.option("--root", "-r", "roots", multiple=True, help="Resource root: dir, zip or package:<name>.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def extract_registered(ctx: click.Context, roots: tuple[str, ...], as_json: bool) -> None:
    """Extract every library listed in AUTOEXTRACT.LIST manifests."""
    from native_loader.core.errors import NativeLoaderError
    from native_loader.core.models.results import ExtractResult

    with _build_loader(ctx, roots) as loader:
        try:
            result = loader.extract_registered()
        except NativeLoaderError as e:
            result = ExtractResult(error=str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.manifests:
        click.secho("No AUTOEXTRACT.LIST manifests found", fg="yellow")
        return

    for lib in result.extracted:
        click.secho("   ✓ ", fg="green", nl=False)
        click.echo(f"{lib.name} → {lib.path}")
    click.echo(f"\n   {len(result.extracted)} libraries from {len(result.manifests)} manifests")


# ── Register sub-command groups from native_loader/ui/cli/ ─────────

from native_loader.ui.cli.workdir import workdir  # noqa: E402

cli.add_command(workdir)


if __name__ == "__main__":
    cli()
