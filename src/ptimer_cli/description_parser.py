#!/usr/bin/env python3
"""
Program Description Parser

This module turns a program description document (YAML or JSON) into a
Program. The document is checked against the description schema before
any Program object is built, and every problem is reported as a
ParseError carrying the line number and the path of the offending field.
"""

import json
import logging
import os
import re
from typing import Any, Dict, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from .document_schema import PROGRAM_SCHEMA
from .errors import ParseError
from .models import MAX_DURATION, Program, Step, StepAction, normalize_asset_reference

logger = logging.getLogger(__name__)

_COMPACT_DURATION = re.compile(r"^(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?$")
_PLAIN_INTEGER = re.compile(r"^[+-]?\d+$")

DocPath = Tuple[Any, ...]


def parse_duration(value) -> int:
    """
    Parse a duration value to seconds.

    Args:
        value: Integer seconds, or a string like "300", "5m", "30s", "1h30m"

    Returns:
        Duration in seconds. Negative integers are returned unchanged so
        that validation can report them.

    Raises:
        ValueError: If the string is not a recognizable duration, or the
            duration is longer than a container can store
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"Duration must be an integer or a string, got {value!r}")

    if isinstance(value, int):
        seconds = value
    elif _PLAIN_INTEGER.match(value.strip()):
        seconds = int(value.strip())
    else:
        match = _COMPACT_DURATION.match(value.strip())
        if not value.strip() or match is None:
            raise ValueError(f"Invalid duration '{value}' (expected seconds or e.g. '1h30m')")
        hours, minutes, secs = (int(group) if group else 0 for group in match.groups())
        seconds = hours * 3600 + minutes * 60 + secs

    if seconds > MAX_DURATION:
        raise ValueError(f"Duration {value!r} exceeds the maximum of {MAX_DURATION} seconds")
    return seconds


def format_location(path: DocPath) -> str:
    """Render a document path like ``steps[2].duration``."""
    text = ""
    for part in path:
        if isinstance(part, int):
            text += f"[{part}]"
        elif text:
            text += f".{part}"
        else:
            text = str(part)
    return text or "document"


class _LineIndex:
    """Line numbers of every node in a composed YAML document."""

    def __init__(self):
        self.lines: Dict[DocPath, int] = {}

    def add(self, node: yaml.Node, path: DocPath = ()):
        self.lines[path] = node.start_mark.line + 1

        if isinstance(node, yaml.MappingNode):
            seen = {}
            for key_node, value_node in node.value:
                if isinstance(key_node, yaml.ScalarNode):
                    key = key_node.value
                else:
                    key = key_node.tag
                if key in seen:
                    raise ParseError(
                        f"Duplicate key '{key}' (first defined on line {seen[key]})",
                        line=key_node.start_mark.line + 1,
                        location=format_location(path),
                    )
                seen[key] = key_node.start_mark.line + 1
                self.add(value_node, path + (key,))
        elif isinstance(node, yaml.SequenceNode):
            for position, item in enumerate(node.value):
                self.add(item, path + (position,))

    def line_for(self, path: DocPath) -> Optional[int]:
        """Line of the closest enclosing node that has one."""
        path = tuple(path)
        while True:
            if path in self.lines:
                return self.lines[path]
            if not path:
                return None
            path = path[:-1]


def _load_yaml(text: str) -> Tuple[Any, _LineIndex]:
    index = _LineIndex()
    loader = yaml.SafeLoader(text)
    try:
        node = loader.get_single_node()
        if node is None:
            return None, index
        index.add(node)
        return loader.construct_document(node), index
    except yaml.MarkedYAMLError as e:
        mark = e.problem_mark or e.context_mark
        line = mark.line + 1 if mark is not None else None
        raise ParseError(f"Invalid YAML: {e.problem or e}", line=line) from e
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}") from e
    finally:
        loader.dispose()


class _JsonPairs(list):
    """Key/value pairs of a JSON object, duplicates kept."""


def _json_to_plain(value: Any, path: DocPath = ()) -> Any:
    """Turn decoded pairs into dicts, rejecting the first duplicate key in document order."""
    if isinstance(value, _JsonPairs):
        data = {}
        for key, item in value:
            if key in data:
                raise ParseError(f"Duplicate key '{key}'", location=format_location(path))
            data[key] = _json_to_plain(item, path + (key,))
        return data
    if isinstance(value, list):
        return [_json_to_plain(item, path + (position,)) for position, item in enumerate(value)]
    return value


def _load_json(text: str) -> Tuple[Any, _LineIndex]:
    try:
        pairs = json.loads(text, object_pairs_hook=_JsonPairs)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg}", line=e.lineno) from e
    return _json_to_plain(pairs), _LineIndex()


def _check_schema(data: Any, index: _LineIndex):
    validator = Draft7Validator(PROGRAM_SCHEMA)
    errors = list(validator.iter_errors(data))
    if not errors:
        return

    def position(error):
        path = tuple(error.absolute_path)
        return (index.line_for(path) or 0, format_location(path))

    first = sorted(errors, key=position)[0]
    path = tuple(first.absolute_path)
    raise ParseError(first.message, line=index.line_for(path), location=format_location(path))


def _duration_field(value, path: DocPath, index: _LineIndex) -> int:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise ParseError(
            str(e), line=index.line_for(path), location=format_location(path)
        ) from e


def _build_step(raw: Dict[str, Any], position: int, default_duration, index: _LineIndex) -> Step:
    path = ("steps", position)

    if "duration" in raw:
        duration = _duration_field(raw["duration"], path + ("duration",), index)
    elif default_duration is not None:
        duration = default_duration
    else:
        raise ParseError(
            f"Step '{raw['id']}' has no duration and the program sets no default_duration",
            line=index.line_for(path),
            location=format_location(path),
        )

    assets = []
    for asset_position, reference in enumerate(raw.get("assets", [])):
        asset_path = path + ("assets", asset_position)
        try:
            assets.append(normalize_asset_reference(reference))
        except ValueError as e:
            raise ParseError(
                str(e), line=index.line_for(asset_path), location=format_location(asset_path)
            ) from e

    return Step(
        step_id=raw["id"],
        title=raw.get("title", ""),
        body=raw.get("body", ""),
        duration=duration,
        next_step=raw.get("next"),
        assets=assets,
        action=StepAction(raw.get("action", StepAction.NONE.value)),
    )


def parse_program_text(text: str, source_format: str = "yaml") -> Program:
    """
    Parse the text of a program description document.

    Args:
        text: Raw document text
        source_format: "yaml" or "json"

    Returns:
        The parsed Program

    Raises:
        ParseError: If the document is malformed or has unknown fields
    """
    if source_format == "json":
        data, index = _load_json(text)
    else:
        data, index = _load_yaml(text)

    if data is None:
        raise ParseError("Document is empty")

    _check_schema(data, index)

    default_duration = None
    if "default_duration" in data:
        default_duration = _duration_field(
            data["default_duration"], ("default_duration",), index
        )

    steps = [
        _build_step(raw, position, default_duration, index)
        for position, raw in enumerate(data["steps"])
    ]

    program = Program(
        title=data["title"],
        steps=steps,
        description=data.get("description", ""),
        lang=data.get("lang"),
        default_duration=default_duration,
    )
    logger.debug("Parsed program '%s' with %d steps", program.title, len(steps))
    return program


def source_format_for(file_path: str) -> str:
    """Pick the document format from a file extension (YAML unless .json)."""
    _, ext = os.path.splitext(file_path)
    return "json" if ext.lower() == ".json" else "yaml"


def load_program_file(file_path: str) -> Program:
    """
    Load and parse a program description file.

    Raises:
        ParseError: If the document is malformed or not UTF-8 text
        OSError: If the file cannot be read
    """
    with open(file_path, "rb") as file:
        raw = file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        line = raw[:e.start].count(b"\n") + 1
        raise ParseError(f"Source is not valid UTF-8 ({e.reason})", line=line) from e
    return parse_program_text(text, source_format_for(file_path))
