#!/usr/bin/env python3
"""
Packaging Pipelines

The create and extract commands are two independent single-pass
pipelines built from the parser, resolver, validator, writer, reader and
decompiler. Each run moves through

    IDLE -> READING -> VALIDATING (create only) -> WRITING -> DONE

and stops in FAILED at the first error, which is re-raised unchanged.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .asset_resolver import resolve_assets
from .config import PackagerConfig
from .container_reader import read_container
from .container_writer import write_container
from .decompiler import decompile
from .description_parser import load_program_file
from .validate_program import check_program

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Where a pipeline run is."""

    IDLE = "idle"
    READING = "reading"
    VALIDATING = "validating"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of a successful pipeline run."""

    command: str
    output: Path
    steps: int = 0
    assets: int = 0
    bytes_written: int = 0
    files: List[Path] = field(default_factory=list)


class PipelineRun:
    """Tracks the stage of one pipeline run and logs its transitions."""

    def __init__(self, command: str):
        self.command = command
        self.stage = Stage.IDLE
        self.failed_stage: Optional[Stage] = None
        self.error_kind: Optional[str] = None

    def _move(self, stage: Stage):
        logger.debug("%s: %s -> %s", self.command, self.stage.value, stage.value)
        self.stage = stage

    @contextmanager
    def stage_of(self, stage: Stage):
        self._move(stage)
        try:
            yield
        except Exception as e:
            self.failed_stage = stage
            self.error_kind = type(e).__name__
            logger.debug(
                "%s failed while %s: %s: %s", self.command, stage.value, self.error_kind, e
            )
            self._move(Stage.FAILED)
            raise

    def finish(self):
        self._move(Stage.DONE)


def create(
    source: Union[str, Path],
    output: Union[str, Path],
    config: Optional[PackagerConfig] = None,
    run: Optional[PipelineRun] = None,
) -> PipelineResult:
    """
    Compile a description document into a container.

    Raises:
        ParseError, ValidationError, OSError
    """
    config = config or PackagerConfig()
    run = run or PipelineRun("create")
    source = Path(source)

    with run.stage_of(Stage.READING):
        program = load_program_file(str(source))
        assets = resolve_assets(program.asset_references(), source.parent)

    with run.stage_of(Stage.VALIDATING):
        check_program(program, assets, allow_cycles=config.allow_cycles)

    with run.stage_of(Stage.WRITING):
        size = write_container(program, assets, output)

    run.finish()
    return PipelineResult(
        command="create",
        output=Path(output),
        steps=len(program.steps),
        assets=len(assets),
        bytes_written=size,
        files=[Path(output)],
    )


def extract(
    container_path: Union[str, Path],
    output_dir: Union[str, Path],
    config: Optional[PackagerConfig] = None,
    run: Optional[PipelineRun] = None,
) -> PipelineResult:
    """
    Unpack a container into a description document and asset files.

    Raises:
        SchemaVersionError, CorruptPackageError, OSError
    """
    config = config or PackagerConfig()
    run = run or PipelineRun("extract")

    with run.stage_of(Stage.READING):
        program, assets = read_container(container_path)

    with run.stage_of(Stage.WRITING):
        document_path, asset_paths = decompile(
            program,
            assets,
            output_dir,
            document_format=config.document_format,
            force=config.force,
        )

    run.finish()
    return PipelineResult(
        command="extract",
        output=document_path,
        steps=len(program.steps),
        assets=len(assets),
        files=[document_path] + asset_paths,
    )


def check_source(source: Union[str, Path], config: Optional[PackagerConfig] = None) -> Dict[str, Any]:
    """
    Parse, resolve and validate a description document without writing.

    Returns:
        Summary of the program

    Raises:
        ParseError, ValidationError, OSError
    """
    config = config or PackagerConfig()
    run = PipelineRun("check")
    source = Path(source)

    with run.stage_of(Stage.READING):
        program = load_program_file(str(source))
        assets = resolve_assets(program.asset_references(), source.parent)

    with run.stage_of(Stage.VALIDATING):
        check_program(program, assets, allow_cycles=config.allow_cycles)

    run.finish()
    return {
        "title": program.title,
        "steps": len(program.steps),
        "assets": len(assets),
        "totalSeconds": program.total_duration(),
    }


def inspect_container(container_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a container and summarize its relations.

    Raises:
        SchemaVersionError, CorruptPackageError, OSError
    """
    run = PipelineRun("inspect")
    with run.stage_of(Stage.READING):
        program, assets = read_container(container_path)
    run.finish()

    return {
        "schemaVersion": program.version,
        "title": program.title,
        "description": program.description,
        "lang": program.lang,
        "defaultDuration": program.default_duration,
        "totalSeconds": program.total_duration(),
        "steps": [
            {
                "ordinal": ordinal,
                "id": step.step_id,
                "title": step.title,
                "duration": step.duration,
                "next": step.next_step,
                "action": step.action.value,
                "assets": list(step.assets),
            }
            for ordinal, step in enumerate(program.steps)
        ],
        "assets": [
            {"id": asset.asset_id, "contentType": asset.content_type, "size": len(asset.data)}
            for asset in assets.values()
        ],
    }
