"""
CLI commands for working directories.

Thin wrappers over ``native_loader.core.services.workdir``.
"""

from __future__ import annotations

import json
import sys

import click


def _settings(ctx: click.Context):
    """Resolve loader settings from context (loaded once per invocation)."""
    if "settings" not in ctx.obj:
        from native_loader.core.config.loader import ConfigError, load_settings

        try:
            ctx.obj["settings"] = load_settings(ctx.obj.get("config_path"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    return ctx.obj["settings"]


@click.group()
def workdir() -> None:
    """Working directories: temp root and leftover cleanup."""


@workdir.command("info")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Show the temp root and any extraction directories in it."""
    from native_loader.core.services.workdir import TMP_PREFIX, resolve_temp_root

    settings = _settings(ctx)
    root = resolve_temp_root(settings.tmp_dir)
    try:
        dirs = sorted(p for p in root.iterdir() if p.name.startswith(TMP_PREFIX))
    except OSError:
        dirs = []

    data = {
        "root": str(root),
        "mode": settings.mode,
        "leftover_min_age_ms": settings.leftover_min_age_ms,
        "directories": [str(p) for p in dirs],
    }
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"\n📁 {root}", fg="cyan", bold=True)
    click.echo(f"   Mode: {settings.mode}")
    click.echo(f"   Leftover min age: {settings.leftover_min_age_ms}ms")
    for path in dirs:
        click.echo(f"     • {path.name}")
    if not dirs:
        click.echo("   (no extraction directories)")
    click.echo()


@workdir.command("cleanup")
@click.option("--min-age-ms", type=int, default=None, help="Override the leftover age threshold.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cleanup(ctx: click.Context, min_age_ms: int | None, as_json: bool) -> None:
    """Delete aged extraction directories left by earlier runs."""
    from native_loader.core.services.workdir import TMP_PREFIX, cleanup_leftovers, resolve_temp_root

    settings = _settings(ctx)
    root = resolve_temp_root(settings.tmp_dir)
    threshold = settings.leftover_min_age_ms if min_age_ms is None else min_age_ms
    report = cleanup_leftovers(root, TMP_PREFIX, threshold)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    click.secho(f"🧹 {root}", fg="cyan", bold=True)
    click.echo(f"   Deleted: {len(report.deleted)}  Skipped (too young): {len(report.skipped)}")
    for path in report.failed:
        click.secho(f"   ✗ partially deleted: {path}", fg="yellow")
