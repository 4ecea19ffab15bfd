# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Command-line interface for SmoothNormals.

Provides commands for:
- smooth: Bake smoothed normals into a UV channel of one or more meshes
- inspect: Report whether a UV channel already holds data
- list-presets: Show available smoothing presets
"""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from smoothnormals import __version__
from smoothnormals.core import (
    SmoothingConfig,
    PRESETS,
    get_preset,
    list_presets,
    channel_index_from_number,
    channel_display,
    has_channel,
    load_mesh,
    process_mesh,
    save_processed_mesh,
)
from smoothnormals.core.mesh_ops import DEFAULT_OUTPUT_DIR


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def build_config(
    config_path: Optional[str],
    preset_name: Optional[str],
    channel: Optional[int],
    normalize: Optional[bool],
    angle: Optional[float],
) -> SmoothingConfig:
    """
    Resolve the smoothing configuration from a file or preset plus overrides.

    Raises:
        click.UsageError: If the preset is unknown or the config file is invalid
    """
    if config_path:
        try:
            config = SmoothingConfig.load(config_path)
        except ValueError as e:
            raise click.UsageError(f"Invalid config file {config_path}: {e}") from e
    elif preset_name:
        config = get_preset(preset_name)
        if config is None:
            raise click.UsageError(
                f"Unknown preset '{preset_name}'. "
                f"Available presets: {', '.join(list_presets())}"
            )
    else:
        config = SmoothingConfig()

    overrides = {}
    if channel is not None:
        overrides["channel"] = channel_index_from_number(channel)
    if normalize is not None:
        overrides["normalize"] = normalize
    if angle is not None:
        overrides["use_angle"] = True
        overrides["angle_threshold"] = angle

    return dataclasses.replace(config, **overrides)


@click.group()
@click.version_option(version=__version__, prog_name="smoothnormals")
def main():
    """
    SmoothNormals - Bake averaged vertex normals into mesh UV channels.

    Use 'smoothnormals COMMAND --help' for more information on each command.
    """
    pass


@main.command()
@click.option("--input", "-i", "input_paths", required=True, multiple=True,
              type=click.Path(exists=True), help="Mesh file to process (repeatable)")
@click.option("--output-dir", "-o", "output_dir", type=click.Path(), default=DEFAULT_OUTPUT_DIR,
              show_default=True, help="Directory for processed meshes")
@click.option("--config", "config_path", type=click.Path(exists=True),
              help="Path to smoothing config (JSON/YAML)")
@click.option("--preset", "-p", "preset_name", type=str,
              help="Name of built-in preset to use")
@click.option("--channel", "-c", type=int,
              help="UV channel number 1-8 (clamped)")
@click.option("--normalize/--no-normalize", default=None,
              help="Remap vectors from -1..1 to 0..1 before storing")
@click.option("--angle", "-a", type=float,
              help="Only average normals within this many degrees")
@click.option("--overwrite-source", is_flag=True,
              help="Replace the source file when its format can hold UV channels")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def smooth(
    input_paths: tuple[str, ...],
    output_dir: str,
    config_path: Optional[str],
    preset_name: Optional[str],
    channel: Optional[int],
    normalize: Optional[bool],
    angle: Optional[float],
    overwrite_source: bool,
    verbose: bool
):
    """
    Store smoothed normals in a UV channel.

    Examples:

        smoothnormals smooth --input model.ply

        smoothnormals smooth -i a.ply -i b.obj -c 3 --normalize

        smoothnormals smooth -i model.ply -p hard-edges --overwrite-source
    """
    setup_logging(verbose)

    config = build_config(config_path, preset_name, channel, normalize, angle)

    errors = config.validate()
    if errors:
        click.echo("Config validation errors:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    click.echo(f"Channel: UV{channel_display(config.channel)}")
    click.echo(f"Normalize 0-1: {config.normalize}")
    if config.use_angle:
        click.echo(f"Smoothing angle: {config.angle_threshold}")

    for input_path in input_paths:
        input_path = Path(input_path)

        click.echo(f"\nLoading: {input_path}")
        try:
            mesh = load_mesh(input_path)
        except Exception as e:
            click.echo(f"Error loading mesh: {e}")
            sys.exit(1)

        result = process_mesh(mesh, config)
        path = save_processed_mesh(
            result,
            source_path=input_path,
            output_dir=output_dir,
            overwrite_source=overwrite_source,
        )

        action = "Overwrote" if result.overwritten else "Saved"
        click.echo(f"  {len(result.smoothed):,} vertices -> UV{channel_display(result.channel)}")
        click.echo(f"  {action}: {path}")


@main.command()
@click.option("--input", "-i", "input_paths", multiple=True,
              type=click.Path(exists=True), help="Mesh file to check (repeatable)")
@click.option("--channel", "-c", type=int, default=channel_display(SmoothingConfig().channel),
              show_default=True, help="UV channel number 1-8")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def inspect(input_paths: tuple[str, ...], channel: int, verbose: bool):
    """
    Report whether a UV channel holds data.

    The channel is reported present only if every given mesh has it.
    """
    setup_logging(verbose)

    index = channel_index_from_number(channel)
    present = bool(input_paths)

    for input_path in input_paths:
        try:
            mesh = load_mesh(input_path)
        except Exception as e:
            click.echo(f"Error loading mesh: {e}")
            sys.exit(1)

        found = has_channel(mesh, index)
        click.echo(f"  {Path(input_path).name}: {'present' if found else 'absent'}")
        present = present and found

    color = "green" if present else "red"
    status = "present" if present else "absent"
    click.echo(click.style("●", fg=color) + f" Normal channel UV{channel_display(index)} {status}")


@main.command("list-presets")
def list_presets_cmd():
    """
    List available smoothing presets.
    """
    click.echo("Available presets:\n")
    for name, (config, description) in PRESETS.items():
        click.echo(f"  {name}")
        click.echo(f"    {description}")
        click.echo(f"    {config.to_dict()}")
        click.echo()


if __name__ == "__main__":
    main()
