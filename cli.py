#!/usr/bin/env python3
"""
PhotoEdit Command Line Interface

Apply adjustments, presets and crops to images from the shell, one file at a
time or a whole directory with a preset.
"""

import sys
import time
import click
import logging
from pathlib import Path
from typing import Optional, Tuple

from tqdm import tqdm

from photoedit import __version__
from photoedit.config import get_config_value, load_config
from photoedit.errors import InvalidAdjustment, InvalidCrop
from photoedit.export.exporter import ExportSettings
from photoedit.processing.geometry.crop import ASPECT_RATIOS
from photoedit.processing.presets import (
    PresetCategory, get_preset_by_id, get_presets_by_category, get_presets_grouped_by_category
)
from photoedit.session import EditingSession
from photoedit.utils.logging import BatchStats, setup_console_logging

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.tif', '.tiff', '.bmp'}
FORMAT_EXTENSIONS = {'webp': '.webp', 'jpeg': '.jpg', 'png': '.png'}
SUFFIX_FORMATS = {'.webp': 'webp', '.jpg': 'jpeg', '.jpeg': 'jpeg', '.png': 'png'}


def _parse_assignment(ctx, param, values) -> dict:
    """Parse repeated key=value options into a dict of floats."""
    result = {}
    for item in values:
        if '=' not in item:
            raise click.BadParameter(f"expected key=value, got '{item}'")
        key, raw = item.split('=', 1)
        try:
            result[key.strip()] = float(raw)
        except ValueError:
            raise click.BadParameter(f"value for '{key}' is not a number: '{raw}'")
    return result


def _parse_crop(ctx, param, value) -> Optional[Tuple[float, float, float, float]]:
    if value is None:
        return None
    parts = value.split(',')
    if len(parts) != 4:
        raise click.BadParameter("expected x,y,width,height in percent")
    try:
        return tuple(float(p) for p in parts)
    except ValueError:
        raise click.BadParameter(f"not a number in '{value}'")


def _validate_preset(ctx, param, value) -> Optional[str]:
    if value is not None and get_preset_by_id(value) is None:
        raise click.BadParameter(f"unknown preset '{value}' (see 'photoedit presets')")
    return value


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, config: Optional[str] = None, verbose: bool = False, quiet: bool = False):
    """
    PhotoEdit - Non-destructive photo editing

    Adjust tone and colour, apply look presets, crop, rotate and flip, then
    export at up to 1920px as WebP (JPEG when WebP is unavailable).
    """
    ctx.ensure_object(dict)

    ctx.obj['config'] = load_config(config)

    level = get_config_value(ctx.obj['config'], 'logging.level', 'INFO')
    if verbose:
        level = 'DEBUG'
    elif quiet:
        level = 'ERROR'
    setup_console_logging(
        level=str(level),
        log_file=get_config_value(ctx.obj['config'], 'logging.file'),
    )

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


@main.command()
@click.option('--category', type=click.Choice([c.value for c in PresetCategory], case_sensitive=False),
              help='Only list presets in this category')
def presets(category: Optional[str] = None):
    """List the preset catalog."""
    if category:
        wanted = next(c for c in PresetCategory if c.value.lower() == category.lower())
        groups = {wanted: get_presets_by_category(wanted)}
    else:
        groups = get_presets_grouped_by_category()

    for cat, items in groups.items():
        click.echo(f"{cat.value}:")
        for preset in items:
            settings = ', '.join(f"{k}={v:g}" for k, v in preset.overrides.items())
            click.echo(f"  {preset.id:<20} {preset.name:<12} {settings}")


@main.command()
@click.argument('source')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False),
              help='Output file; .webp, .jpg or .png selects the format')
@click.option('--preset', '-p', callback=_validate_preset, help='Preset id to apply')
@click.option('--intensity', type=click.FloatRange(0, 100), default=100.0,
              help='Preset intensity (0-100)')
@click.option('--set', 'assignments', multiple=True, callback=_parse_assignment,
              metavar='KEY=VALUE', help='Set an adjustment, e.g. --set contrast=20')
@click.option('--crop', callback=_parse_crop, metavar='X,Y,W,H',
              help='Crop rectangle in percent of the image')
@click.option('--aspect', type=click.Choice(list(ASPECT_RATIOS)), help='Fit a centred crop with this ratio')
@click.option('--rotate', type=int, default=0, help='Rotate by a multiple of 90 degrees')
@click.option('--straighten', type=float, default=0.0, help='Fine rotation in degrees (-45 to 45)')
@click.option('--flip-h', is_flag=True, help='Flip horizontally')
@click.option('--flip-v', is_flag=True, help='Flip vertically')
@click.option('--max-dimension', type=click.IntRange(min=1), help='Longest side of the export')
@click.option('--quality', type=click.FloatRange(0, 1), help='Encoder quality (0.0-1.0)')
@click.pass_context
def edit(ctx, source: str, output: str, preset: Optional[str], intensity: float, assignments: dict,
         crop: Optional[Tuple[float, float, float, float]], aspect: Optional[str], rotate: int,
         straighten: float, flip_h: bool, flip_v: bool, max_dimension: Optional[int],
         quality: Optional[float]):
    """
    Edit a single image and write the export.

    SOURCE: Image path or http(s) URL
    """
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)

    session = EditingSession(source, config=config)
    loaded = session.load()
    if not loaded.ok:
        click.echo(f"❌ {loaded.error}", err=True)
        sys.exit(1)

    try:
        if aspect:
            session.set_aspect_ratio(aspect)
        if crop:
            session.set_crop(session.crop.with_rect(*crop))
        if rotate:
            session.rotate(rotate)
        if straighten:
            session.set_straighten(straighten)
        if flip_h:
            session.flip_horizontal()
        if flip_v:
            session.flip_vertical()
        if preset:
            session.select_preset(preset)
            session.set_preset_intensity(intensity)
        if assignments:
            session.set_adjustments(assignments)
    except (InvalidAdjustment, InvalidCrop) as e:
        raise click.UsageError(str(e))

    settings = _export_settings(session.export_settings, output, max_dimension, quality)
    result = session.export(settings)
    session.close()

    if not result.ok:
        click.echo(f"❌ Export failed: {result.error}", err=True)
        sys.exit(1)

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.data)

    if not quiet:
        click.echo(f"✅ {output_path} ({result.width}x{result.height} {result.format}, {len(result.data)} bytes)")


def _export_settings(base: ExportSettings, output: str, max_dimension: Optional[int],
                     quality: Optional[float]) -> ExportSettings:
    fmt = SUFFIX_FORMATS.get(Path(output).suffix.lower(), base.format)
    return ExportSettings(
        max_dimension=max_dimension or base.max_dimension,
        quality=base.quality if quality is None else quality,
        format=fmt,
        fallback_format=base.fallback_format,
    )


@main.command()
@click.argument('directory', type=click.Path(exists=True, file_okay=False, dir_okay=True))
@click.option('--output-dir', '-o', required=True, type=click.Path(file_okay=False, dir_okay=True),
              help='Directory for exported images')
@click.option('--preset', '-p', required=True, callback=_validate_preset, help='Preset id to apply')
@click.option('--intensity', type=click.FloatRange(0, 100), default=100.0,
              help='Preset intensity (0-100)')
@click.option('--recursive/--no-recursive', default=False, help='Process subdirectories')
@click.pass_context
def batch(ctx, directory: str, output_dir: str, preset: str, intensity: float, recursive: bool):
    """
    Apply a preset to every image in a directory.

    DIRECTORY: Directory containing images
    """
    config = ctx.obj.get('config', {})
    quiet = ctx.obj.get('quiet', False)

    pattern = '**/*' if recursive else '*'
    files = sorted(p for p in Path(directory).glob(pattern)
                   if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS)
    if not files:
        click.echo("❌ No images found in directory", err=True)
        sys.exit(1)

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    stats = BatchStats()
    stats.set_total(len(files))

    for path in tqdm(files, desc=f"Applying {preset}", disable=quiet):
        start_time = time.time()
        session = EditingSession(str(path), config=config)
        loaded = session.load()
        if not loaded.ok:
            stats.add_result(False, processing_time=time.time() - start_time)
            stats.add_error(str(path), str(loaded.error))
            continue

        session.select_preset(preset)
        session.set_preset_intensity(intensity)
        result = session.export()
        session.close()

        if not result.ok:
            stats.add_result(False, processing_time=time.time() - start_time)
            stats.add_error(str(path), str(result.error))
            continue

        (out_dir / f"{path.stem}{FORMAT_EXTENSIONS[result.format]}").write_bytes(result.data)
        stats.add_result(True, fmt=result.format, processing_time=time.time() - start_time)

    if not quiet:
        stats.print_summary()

    if stats.failed_files:
        sys.exit(1)


@main.command()
def version():
    """Show PhotoEdit version information."""
    click.echo(f"PhotoEdit v{__version__}")
    click.echo("Non-destructive photo editing engine")


if __name__ == '__main__':
    main()
