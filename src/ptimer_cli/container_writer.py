#!/usr/bin/env python3
"""
Container Writer

Serializes a validated program and its assets into a container file.

Output is deterministic: relations are written in a fixed order, rows are
ordered by ordinal (steps) or identifier (metadata, assets), and nothing
time-dependent is stored, so compiling the same input twice produces
byte-identical files.

The file is written to a temporary path in the destination directory and
renamed into place only once it is complete.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Mapping, Union

from . import container
from .models import Asset, Program

logger = logging.getLogger(__name__)

CONTAINER_FILE_MODE = 0o644


def metadata_rows(program: Program) -> Dict[str, str]:
    """Program metadata as string key/value pairs."""
    metadata = {"title": program.title, "description": program.description}
    if program.lang is not None:
        metadata["lang"] = program.lang
    if program.default_duration is not None:
        metadata["default_duration"] = str(program.default_duration)
    return metadata


def encode_program(program: Program, assets: Mapping[str, Asset]) -> bytes:
    """
    Encode a program and its assets as container bytes.

    Args:
        program: A validated program
        assets: Resolved assets keyed by identifier

    Returns:
        The complete container content, trailer included
    """
    meta_rows = [
        container.pack_str(key) + container.pack_str(value)
        for key, value in sorted(metadata_rows(program).items())
    ]

    step_rows: List[bytes] = []
    link_rows: List[bytes] = []
    for ordinal, step in enumerate(program.steps):
        step_rows.append(
            container.pack_u32(ordinal)
            + container.pack_str(step.step_id)
            + container.pack_str(step.title)
            + container.pack_str(step.body)
            + container.pack_u64(step.duration)
            + container.pack_u8(1 if step.next_step is not None else 0)
            + container.pack_str(step.next_step or "")
            + container.pack_u8(step.action.code)
        )
        for position, reference in enumerate(step.assets):
            link_rows.append(
                container.pack_u32(ordinal)
                + container.pack_u32(position)
                + container.pack_str(reference)
            )

    asset_rows = [
        container.pack_str(asset.asset_id)
        + container.pack_str(asset.content_type)
        + container.pack_blob(asset.data)
        for _, asset in sorted(assets.items())
    ]

    content = b"".join(
        [
            container.pack_header(program.version),
            container.pack_relation(container.META_TAG, meta_rows),
            container.pack_relation(container.STEP_TAG, step_rows),
            container.pack_relation(container.LINK_TAG, link_rows),
            container.pack_relation(container.ASSET_TAG, asset_rows),
        ]
    )
    return content + container.pack_trailer(content)


def write_atomically(content: bytes, output_path: Union[str, Path]):
    """
    Write bytes to ``output_path`` through a temporary file in the same
    directory. The temporary file is removed on every failure path.
    """
    output_path = Path(output_path)
    directory = output_path.parent

    temp_fd, temp_name = tempfile.mkstemp(
        dir=directory, prefix=f".{output_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(temp_fd, "wb") as file_obj:
            file_obj.write(content)
            file_obj.flush()
            os.fsync(file_obj.fileno())
        os.chmod(temp_path, CONTAINER_FILE_MODE)
        os.replace(temp_path, output_path)
        temp_path = None
    finally:
        if temp_path is not None and temp_path.exists():
            logger.debug("Removing incomplete temporary file %s", temp_path)
            temp_path.unlink()


def write_container(
    program: Program, assets: Mapping[str, Asset], output_path: Union[str, Path]
) -> int:
    """
    Compile a program into a container file.

    Args:
        program: A validated program
        assets: Resolved assets keyed by identifier
        output_path: Destination file, replaced if it exists

    Returns:
        Number of bytes written
    """
    if not program.steps:
        logger.warning("Program '%s' has no steps; writing an empty container", program.title)

    content = encode_program(program, assets)
    write_atomically(content, output_path)
    logger.info(
        "Wrote %s: %d steps, %d assets, %d bytes",
        output_path,
        len(program.steps),
        len(assets),
        len(content),
    )
    return len(content)
