#!/usr/bin/env python3
"""
Program Description Schema

JSON Schema for program description documents. Every object is closed
with ``additionalProperties: false`` so that an unknown field is always
reported instead of being dropped on the way into a container.
"""

from typing import Any, Dict

from .models import SCHEMA_VERSION, StepAction

DURATION_SCHEMA = {
    "type": ["integer", "string"],
    "description": "Whole seconds, or a compact string such as '1h30m', '5m' or '45s'",
}

STEP_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "description": "A single timed step",
    "required": ["id"],
    "additionalProperties": False,
    "properties": {
        "id": {
            "type": "string",
            "minLength": 1,
            "description": "Identifier, unique within the program",
        },
        "title": {"type": "string", "description": "Short heading shown while the step runs"},
        "body": {"type": "string", "description": "Longer instructions for the step"},
        "duration": DURATION_SCHEMA,
        "next": {
            "type": "string",
            "minLength": 1,
            "description": "Identifier of the step to run after this one",
        },
        "assets": {
            "type": "array",
            "description": "Paths of bundled files, relative to the document",
            "items": {"type": "string", "minLength": 1},
        },
        "action": {
            "type": "string",
            "enum": [action.value for action in StepAction],
            "description": "What happens when the timer runs out",
        },
    },
}

PROGRAM_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Timer Program Description",
    "description": "Human-authored description of a timer program",
    "type": "object",
    "required": ["title", "steps"],
    "additionalProperties": False,
    "properties": {
        "version": {
            "type": "integer",
            "enum": [SCHEMA_VERSION],
            "description": "Description format version",
        },
        "title": {"type": "string", "description": "Program title"},
        "description": {"type": "string", "description": "Free-text program description"},
        "lang": {
            "type": "string",
            "minLength": 1,
            "description": "BCP-47 language tag of the program text",
        },
        "default_duration": DURATION_SCHEMA,
        "steps": {
            "type": "array",
            "description": "Steps in the order they run",
            "items": STEP_SCHEMA,
        },
    },
}
