#!/usr/bin/env python3
"""
Command-line interface for ptimer

This module provides the command-line interface for the ptimer packager,
allowing users to compile timer program descriptions into container files
and to extract containers back into editable descriptions.
"""

import json
import logging
import sys

import click
from colorama import Fore, Style

from . import __version__
from .config import (
    CYCLE_POLICIES,
    DOCUMENT_FORMATS,
    PackagerConfig,
    cycle_policy_allows,
)
from .errors import (
    CorruptPackageError,
    ParseError,
    PtimerError,
    SchemaVersionError,
    ValidationError,
)
from .pipeline import check_source, create, extract, inspect_container

ERROR_LABELS = (
    (ParseError, "Parse error"),
    (SchemaVersionError, "Unsupported container"),
    (CorruptPackageError, "Corrupt container"),
    (OSError, "I/O error"),
)


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_config(**overrides) -> PackagerConfig:
    """Environment settings with command-line overrides applied."""
    try:
        return PackagerConfig.from_env().with_overrides(**overrides)
    except ValueError as e:
        raise click.ClickException(str(e))


def report_failure(error: Exception):
    """Print one line per error and exit with status 1."""
    if isinstance(error, ValidationError):
        count = len(error.violations)
        click.echo(f"{Fore.RED}❌ Validation failed with {count} error(s):{Style.RESET_ALL}")
        for violation in error.violations:
            click.echo(f"  - {violation}")
    else:
        label = "Error"
        for error_type, error_label in ERROR_LABELS:
            if isinstance(error, error_type):
                label = error_label
                break
        click.echo(f"{Fore.RED}❌ {label}: {error}{Style.RESET_ALL}")
    sys.exit(1)


# Set up the main CLI group
@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__, prog_name="ptimer")
def cli(verbose):
    """
    ptimer - Package timer programs into portable container files.

    Programs are described in YAML or JSON as an ordered list of timed
    steps, optionally with bundled sound and image assets.
    """
    configure_logging(verbose)


# Create command
@cli.command("create")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("output", type=click.Path(dir_okay=False))
@click.option(
    "--cycles",
    type=click.Choice(CYCLE_POLICIES),
    default=None,
    help="Whether 'next' references may loop back (default: allow, or $PTIMER_ALLOW_CYCLES)",
)
def create_command(source, output, cycles):
    """
    Compile a program description into a container file.

    SOURCE is a YAML or JSON description; asset paths in it are resolved
    relative to its directory. OUTPUT is replaced atomically.
    """
    config = load_config(allow_cycles=cycle_policy_allows(cycles))
    try:
        result = create(source, output, config)
    except (PtimerError, OSError) as e:
        report_failure(e)

    click.echo(
        f"{Fore.GREEN}✅ Created {result.output}{Style.RESET_ALL} "
        f"({result.steps} steps, {result.assets} assets, {result.bytes_written} bytes)"
    )


# Extract command
@cli.command("extract")
@click.argument("container", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_dir", type=click.Path(file_okay=False))
@click.option(
    "--format",
    "-f",
    "document_format",
    type=click.Choice(DOCUMENT_FORMATS),
    default=None,
    help="Description format (default: yaml, or $PTIMER_DOCUMENT_FORMAT)",
)
@click.option("--force", is_flag=True, help="Overwrite existing files")
def extract_command(container, output_dir, document_format, force):
    """
    Extract a container into a description document and asset files.

    The resulting directory can be compiled again with 'ptimer create'.
    """
    config = load_config(document_format=document_format, force=force)
    try:
        result = extract(container, output_dir, config)
    except (PtimerError, OSError) as e:
        report_failure(e)

    click.echo(
        f"{Fore.GREEN}✅ Extracted {container} to {result.output}{Style.RESET_ALL} "
        f"({result.steps} steps, {result.assets} assets)"
    )


# Check command
@cli.command("check")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--cycles",
    type=click.Choice(CYCLE_POLICIES),
    default=None,
    help="Whether 'next' references may loop back (default: allow, or $PTIMER_ALLOW_CYCLES)",
)
@click.option("--json", "-j", "json_output", is_flag=True, help="Print machine-readable JSON result")
def check_command(source, cycles, json_output):
    """
    Validate a program description without writing a container.
    """
    config = load_config(allow_cycles=cycle_policy_allows(cycles))
    try:
        summary = check_source(source, config)
    except (PtimerError, OSError) as e:
        report_failure(e)

    if json_output:
        click.echo(json.dumps(summary, indent=2))
        return
    click.echo(f"{Fore.GREEN}✅ {source} is valid{Style.RESET_ALL}")
    for key, value in summary.items():
        click.echo(f"  - {key}: {value}")


# Inspect command
@cli.command("inspect")
@click.argument("container", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "-j", "json_output", is_flag=True, help="Print machine-readable JSON result")
def inspect_command(container, json_output):
    """
    Verify a container and list its steps and assets.
    """
    try:
        summary = inspect_container(container)
    except (PtimerError, OSError) as e:
        report_failure(e)

    if json_output:
        click.echo(json.dumps(summary, indent=2, ensure_ascii=False))
        return

    click.echo(f"{summary['title']} (schema v{summary['schemaVersion']})")
    if summary["description"]:
        click.echo(summary["description"])

    steps = summary["steps"]
    if not steps:
        click.echo("No steps.")
    else:
        id_width = max(len(step["id"]) for step in steps) + 2
        title_width = max([len(step["title"]) for step in steps] + [5]) + 2
        click.echo(f"{'#':<4}{'ID':<{id_width}}{'Title':<{title_width}}{'Seconds':>8}  Action")
        click.echo(f"{'-' * 4}{'-' * id_width}{'-' * title_width}{'-' * 8}  {'-' * 12}")
        for step in steps:
            action = step["action"]
            if step["next"]:
                action += f" -> {step['next']}"
            click.echo(
                f"{step['ordinal']:<4}{step['id']:<{id_width}}{step['title']:<{title_width}}"
                f"{step['duration']:>8}  {action}"
            )

    for asset in summary["assets"]:
        click.echo(f"  asset {asset['id']} ({asset['contentType']}, {asset['size']} bytes)")
    click.echo(f"Total: {summary['totalSeconds']} seconds")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
