"""Command line tools for tileset files."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from tqdm import tqdm

from tilepalette.config import TILESET_FILE_SUFFIX, TILESET_ROOT_PATH
from tilepalette.core import persistence
from tilepalette.core.errors import CorruptDataError
from tilepalette.core.images import TilesetImageLoader
from tilepalette.core.registry import TileRegistry

logger = logging.getLogger(__name__)


def find_tileset_files(paths: tuple[str, ...]) -> list[Path]:
    """Expand files and directories into a sorted list of tileset files."""
    files: set[Path] = set()
    for value in paths:
        path = Path(value)
        if path.is_dir():
            files.update(path.glob(f"*{TILESET_FILE_SUFFIX}"))
        else:
            files.add(path)
    return sorted(files)


def _print_tileset(registry: TileRegistry) -> None:
    image = registry.image()
    click.echo(click.style(f"Tileset {registry.name!r}", fg="cyan", bold=True))
    click.echo(f"Tiles: {registry.tileCount()} | Max index: {registry.maxIndex}")
    click.echo(f"Image: {registry.imagePath()}")
    if image is None:
        click.echo(click.style("  (image unavailable)", fg="yellow"))
    else:
        click.echo(f"  {image.width()}x{image.height()} px")

    for index, tile in registry.items():
        rect = tile.rect
        click.echo(
            f"  #{index:<4} rank {registry.rankOfIndex(index):<4} "
            f"{rect.x},{rect.y} {rect.width}x{rect.height} "
            f"layer={tile.layer.name} obstacle={tile.obstacle.name}"
        )


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False),
    default=None,
    help=f"Data root holding images/tilesets (default: {TILESET_ROOT_PATH})",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, root: str | None, verbose: bool) -> None:
    """Inspect and create tileset files."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = TilesetImageLoader(root)


@main.command()
@click.argument("tileset_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def info(loader: TilesetImageLoader, tileset_file: str) -> None:
    """Show the content of a tileset file."""
    try:
        registry = persistence.load(tileset_file, loader)
    except CorruptDataError as e:
        logger.error("Cannot read %s: %s", tileset_file, e)
        click.echo(click.style(f"Error: {tileset_file}: {e}", fg="red"), err=True)
        sys.exit(1)
    _print_tileset(registry)


@main.command()
@click.argument("name")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Output file, {TILESET_FILE_SUFFIX} is appended if missing (default: NAME)",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
@click.pass_obj
def new(loader: TilesetImageLoader, name: str, output: str | None, force: bool) -> None:
    """Create an empty tileset called NAME."""
    output_path = persistence.tileset_file_path(output or name)
    if output_path.exists() and not force:
        click.echo(f"{output_path} already exists (use --force to overwrite)", err=True)
        sys.exit(1)

    registry = TileRegistry(name, loader)
    output_path = persistence.save(output_path, registry)
    click.echo(f"Created {output_path}")
    if registry.image() is None:
        click.echo(
            click.style(f"Warning: no image at {registry.imagePath()}", fg="yellow")
        )


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.pass_obj
def check(loader: TilesetImageLoader, paths: tuple[str, ...]) -> None:
    """Validate tileset files.

    PATHS can be tileset files or directories containing *.tileset files.
    Exits with status 1 if any file is corrupt.
    """
    files = find_tileset_files(paths)
    if not files:
        click.echo("No tileset files found", err=True)
        sys.exit(1)

    errors: list[tuple[Path, str]] = []
    missing_images = 0
    with tqdm(total=len(files), desc="Checking tilesets", disable=len(files) < 2) as pbar:
        for path in files:
            try:
                registry = persistence.load(path, loader)
            except (CorruptDataError, OSError) as e:
                errors.append((path, str(e)))
            else:
                if registry.image() is None:
                    missing_images += 1
            pbar.update(1)

    ok = len(files) - len(errors)
    parts = [click.style(f"{ok} valid", fg="green")]
    if missing_images:
        parts.append(click.style(f"{missing_images} without image", fg="yellow"))
    if errors:
        parts.append(click.style(f"{len(errors)} corrupt", fg="red"))
    click.echo(click.style("Checked: ", bold=True) + ", ".join(parts))

    if errors:
        click.echo(click.style("Corrupt tilesets:", fg="red"))
        for path, error in errors:
            click.echo(f"  {path.name}: {error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
