"""library-dll command line interface.

Builds, inspects and removes the library bundle of a project outside of
the host build.
"""

import asyncio
import shutil
import sys

import click

from .cache.detection import diff_dependencies
from .cache.detection import needs_rebuild
from .config.loader import load_options
from .config.settings import LibrarySettings
from .errors import LibraryDllError
from .plugin.session import BundleSession
from .utils.log_config import configure_logging


def _load(base: str, dll_name: str | None) -> LibrarySettings:
    options = {"base": base}
    if dll_name:
        options["dll_name"] = dll_name
    settings = load_options(options)
    configure_logging(settings.log)
    return settings


base_option = click.option(
    "--base",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Project root containing package.json",
)
dll_name_option = click.option("--dll-name", default=None, help="Bundle name (default: from config)")


@click.group()
def cli():
    """library-dll - Prebuilt third-party library bundles."""
    pass


@cli.command()
@base_option
@dll_name_option
@click.option("--force", is_flag=True, help="Rebuild even if the bundle is up to date")
def build(base: str, dll_name: str | None, force: bool):
    """Build the library bundle if package.json changed."""
    try:
        settings = _load(base, dll_name)
        session = BundleSession(settings)
        result = asyncio.run(session.ensure_bundle(force=force))
    except LibraryDllError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if result is None:
        click.echo(f"{session.descriptor.asset_file_name} is up to date")
        return
    click.echo(f"Built {session.descriptor.asset_file_path} ({len(result.entries)} libraries)")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


@cli.command()
@base_option
@dll_name_option
def status(base: str, dll_name: str | None):
    """Show whether the library bundle needs a rebuild."""
    try:
        settings = _load(base, dll_name)
        session = BundleSession(settings)
        current = asyncio.run(session.read_manifest())
        cached = asyncio.run(session.store.load())
    except LibraryDllError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    cached_dependencies = cached.dependencies if cached else None
    descriptor = session.descriptor
    click.echo(f"Bundle: {descriptor.asset_file_path}")
    click.echo(f"Dependencies: {len(current)}")
    if cached is None:
        click.echo("Cache: none")
    elif cached.built_at:
        click.echo(f"Cache: built {cached.built_at.isoformat()}")
    if needs_rebuild(current, cached_dependencies):
        click.echo(f"Rebuild needed: yes ({diff_dependencies(current, cached_dependencies).summary()})")
    elif not descriptor.manifest_file_path.exists():
        click.echo("Rebuild needed: yes (export manifest missing)")
    else:
        click.echo("Rebuild needed: no")


@cli.command()
@base_option
@dll_name_option
def clean(base: str, dll_name: str | None):
    """Delete the bundle directory, forcing a rebuild next time."""
    try:
        settings = _load(base, dll_name)
    except LibraryDllError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    directory = settings.descriptor().output_directory
    if not directory.exists():
        click.echo(f"Nothing to clean at {directory}")
        return
    shutil.rmtree(directory)
    click.echo(f"Removed {directory}")


def main():
    """Entry point for library-dll command."""
    cli()


if __name__ == "__main__":
    main()
