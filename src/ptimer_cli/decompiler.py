#!/usr/bin/env python3
"""
Decompiler

Turns a program read from a container back into a description document
and a directory of asset files. The document uses the same grammar the
description parser accepts, and every asset is written at the path its
identifier names, so the output directory can be compiled again as is.
"""

import errno
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from .models import Asset, Program, Step, StepAction

logger = logging.getLogger(__name__)


def step_to_document(step: Step) -> Dict[str, Any]:
    """Describe a step, leaving out fields that hold their default value."""
    data: Dict[str, Any] = {"id": step.step_id}
    if step.title:
        data["title"] = step.title
    if step.body:
        data["body"] = step.body
    data["duration"] = step.duration
    if step.next_step is not None:
        data["next"] = step.next_step
    if step.assets:
        data["assets"] = list(step.assets)
    if step.action is not StepAction.NONE:
        data["action"] = step.action.value
    return data


def program_to_document(program: Program) -> Dict[str, Any]:
    """Build the description document for a program."""
    document: Dict[str, Any] = {"version": program.version, "title": program.title}
    if program.description:
        document["description"] = program.description
    if program.lang is not None:
        document["lang"] = program.lang
    if program.default_duration is not None:
        document["default_duration"] = program.default_duration
    document["steps"] = [step_to_document(step) for step in program.steps]
    return document


def render_document(program: Program, document_format: str = "yaml") -> str:
    """Render the description document as YAML or JSON text."""
    document = program_to_document(program)
    if document_format == "json":
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    return yaml.safe_dump(
        document, default_flow_style=False, sort_keys=False, allow_unicode=True
    )


def document_name_for(assets: Mapping[str, Asset], document_format: str) -> str:
    """
    Name the description document so that it does not clash with an asset.

    ``program.<format>`` is used unless an asset already occupies that
    path, in which case ``program-1.<format>``, ``program-2.<format>``
    and so on are tried.
    """

    def taken(name):
        return any(asset_id == name or asset_id.startswith(name + "/") for asset_id in assets)

    name = f"program.{document_format}"
    suffix = 0
    while taken(name):
        suffix += 1
        name = f"program-{suffix}.{document_format}"
    return name


def _planned_files(
    assets: Mapping[str, Asset],
    output_dir: Path,
    document_name: str,
) -> List[Tuple[Path, Optional[bytes]]]:
    files: List[Tuple[Path, Optional[bytes]]] = [
        (output_dir / asset_id, asset.data) for asset_id, asset in sorted(assets.items())
    ]
    files.append((output_dir / document_name, None))
    return files


def decompile(
    program: Program,
    assets: Mapping[str, Asset],
    output_dir: Union[str, Path],
    document_format: str = "yaml",
    force: bool = False,
) -> Tuple[Path, List[Path]]:
    """
    Write a description document and asset files for a program.

    Args:
        program: Program read from a container
        assets: Assets keyed by identifier
        output_dir: Directory to write into (created if missing)
        document_format: "yaml" or "json"
        force: Overwrite files that already exist

    Returns:
        Tuple of (document path, asset paths)

    Raises:
        FileExistsError: If a target file exists and ``force`` is not set
        OSError: If a file cannot be written
    """
    output_dir = Path(output_dir)
    document_name = document_name_for(assets, document_format)
    planned = _planned_files(assets, output_dir, document_name)

    if not force:
        for path, _ in planned:
            if path.exists():
                raise FileExistsError(
                    errno.EEXIST, "Refusing to overwrite existing file", os.fspath(path)
                )

    output_dir.mkdir(parents=True, exist_ok=True)

    asset_paths = []
    for path, data in planned[:-1]:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        asset_paths.append(path)
        logger.debug("Wrote asset %s (%d bytes)", path, len(data))

    document_path = planned[-1][0]
    document_path.write_text(render_document(program, document_format), encoding="utf-8")
    logger.info(
        "Extracted '%s' to %s (%d steps, %d assets)",
        program.title,
        output_dir,
        len(program.steps),
        len(asset_paths),
    )
    return document_path, asset_paths
