#!/usr/bin/env python3
"""
Container Reader

Opens a container file, checks its schema version and checksum, and
materializes the program and assets it holds.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple, Union

from . import container
from .container import Cursor
from .errors import CorruptPackageError, SchemaVersionError
from .models import Asset, Program, Step, StepAction, normalize_asset_reference

logger = logging.getLogger(__name__)


def read_schema_version(data: bytes) -> int:
    """
    Read the schema version marker from raw container bytes.

    Raises:
        CorruptPackageError: If the bytes do not start with a container header
        SchemaVersionError: If the version is not one this reader knows
    """
    if len(data) < container.HEADER_SIZE:
        raise CorruptPackageError("File is too short to be a container")

    magic, version = Cursor(data).unpack(container.HEADER_FORMAT)
    if magic != container.MAGIC:
        raise CorruptPackageError("File is not a ptimer container (bad magic bytes)")
    if version not in container.SUPPORTED_SCHEMA_VERSIONS:
        raise SchemaVersionError(version, container.SUPPORTED_SCHEMA_VERSIONS)
    return version


def verify_checksum(data: bytes) -> bytes:
    """
    Check the trailer of a container and return the checksummed content.

    Raises:
        CorruptPackageError: If the trailer is missing or does not match
    """
    if len(data) < container.HEADER_SIZE + container.TRAILER_SIZE:
        raise CorruptPackageError("Container is truncated: no integrity trailer")

    if not data.endswith(container.END_MARKER):
        raise CorruptPackageError("Container is truncated: end marker missing")

    content = data[:-container.TRAILER_SIZE]
    stored = data[-container.TRAILER_SIZE:-len(container.END_MARKER)]
    if container.checksum(content) != stored:
        raise CorruptPackageError("Container checksum mismatch")
    return content


def _read_metadata(cursor: Cursor) -> Dict[str, str]:
    row_count, rows = container.read_relation(cursor, container.META_TAG)
    metadata = {}
    for _ in range(row_count):
        key = rows.read_str()
        metadata[key] = rows.read_str()
    rows.expect_end()
    return metadata


def _read_steps(cursor: Cursor) -> list:
    row_count, rows = container.read_relation(cursor, container.STEP_TAG)
    ordered = []
    for _ in range(row_count):
        ordinal = rows.read_u32()
        step_id = rows.read_str()
        title = rows.read_str()
        body = rows.read_str()
        duration = rows.read_u64()
        has_next = rows.read_u8()
        next_step = rows.read_str()
        action_code = rows.read_u8()
        try:
            action = StepAction.from_code(action_code)
        except ValueError as e:
            raise CorruptPackageError(str(e)) from e

        step = Step(
            step_id=step_id,
            title=title,
            body=body,
            duration=duration,
            next_step=next_step if has_next else None,
            action=action,
        )
        ordered.append((ordinal, step))
    rows.expect_end()

    ordered.sort(key=lambda row: row[0])
    if [ordinal for ordinal, _ in ordered] != list(range(len(ordered))):
        raise CorruptPackageError("Step ordinals are not a contiguous sequence")
    return [step for _, step in ordered]


def _read_links(cursor: Cursor, steps: list):
    row_count, rows = container.read_relation(cursor, container.LINK_TAG)
    links = []
    for _ in range(row_count):
        ordinal = rows.read_u32()
        position = rows.read_u32()
        links.append((ordinal, position, rows.read_str()))
    rows.expect_end()

    for ordinal, _, asset_id in sorted(links):
        if ordinal >= len(steps):
            raise CorruptPackageError(f"Asset link refers to missing step ordinal {ordinal}")
        steps[ordinal].assets.append(asset_id)


def _read_assets(cursor: Cursor) -> Dict[str, Asset]:
    row_count, rows = container.read_relation(cursor, container.ASSET_TAG)
    assets = {}
    for _ in range(row_count):
        asset_id = rows.read_str()
        content_type = rows.read_str()
        data = rows.read_blob()
        try:
            safe_id = normalize_asset_reference(asset_id)
        except ValueError as e:
            raise CorruptPackageError(str(e)) from e
        if safe_id != asset_id or asset_id in assets:
            raise CorruptPackageError(f"Invalid or repeated asset identifier '{asset_id}'")
        assets[asset_id] = Asset(asset_id=asset_id, content_type=content_type, data=data)
    rows.expect_end()
    return assets


def _parse_default_duration(value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise CorruptPackageError(f"Invalid default_duration metadata '{value}'") from e


def decode_container(data: bytes) -> Tuple[Program, Dict[str, Asset]]:
    """
    Decode container bytes.

    Raises:
        SchemaVersionError: If the version marker is unknown
        CorruptPackageError: If the checksum or any relation is bad
    """
    version = read_schema_version(data)
    content = verify_checksum(data)

    cursor = Cursor(content)
    cursor.take(container.HEADER_SIZE)

    metadata = _read_metadata(cursor)
    steps = _read_steps(cursor)
    _read_links(cursor, steps)
    assets = _read_assets(cursor)
    cursor.expect_end()

    for step in steps:
        for asset_id in step.assets:
            if asset_id not in assets:
                raise CorruptPackageError(
                    f"Step '{step.step_id}' links to asset '{asset_id}' which is not stored"
                )

    if "title" not in metadata:
        raise CorruptPackageError("Container metadata has no title")

    default_duration = None
    if "default_duration" in metadata:
        default_duration = _parse_default_duration(metadata["default_duration"])

    program = Program(
        title=metadata["title"],
        steps=steps,
        description=metadata.get("description", ""),
        lang=metadata.get("lang"),
        default_duration=default_duration,
        version=version,
    )
    return program, assets


def read_container(path: Union[str, Path]) -> Tuple[Program, Dict[str, Asset]]:
    """
    Read and verify a container file.

    Args:
        path: Path to the container

    Returns:
        Tuple of (program with steps in stored order, assets keyed by identifier)

    Raises:
        OSError: If the file cannot be read
        SchemaVersionError: If the version marker is unknown
        CorruptPackageError: If the checksum or any relation is bad
    """
    data = Path(path).read_bytes()
    program, assets = decode_container(data)
    logger.info(
        "Read %s: schema v%d, %d steps, %d assets",
        path,
        program.version,
        len(program.steps),
        len(assets),
    )
    return program, assets
