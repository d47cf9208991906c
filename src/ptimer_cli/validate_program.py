#!/usr/bin/env python3
"""
Program Validator

Structural checks that run on a parsed program before it is compiled.
Checks are grouped into classes and reported in a fixed order:

    duplicate-id, dangling-next, dangling-asset, negative-duration, cycle

Every violation of every class is collected so a single run produces the
complete list of things to fix. The cycle class only applies when cycles
are forbidden by configuration.
"""

import logging
from typing import Dict, List, Mapping, Optional

from .errors import ValidationError, Violation
from .models import Asset, Program

logger = logging.getLogger(__name__)

DUPLICATE_ID = "duplicate-id"
DANGLING_NEXT = "dangling-next"
DANGLING_ASSET = "dangling-asset"
NEGATIVE_DURATION = "negative-duration"
CYCLE = "cycle"


def find_duplicate_ids(program: Program) -> List[Violation]:
    step_id_count: Dict[str, int] = {}
    for step in program.steps:
        step_id_count[step.step_id] = step_id_count.get(step.step_id, 0) + 1

    return [
        Violation(DUPLICATE_ID, f"Duplicate step ID '{step_id}' found {count} times", step_id)
        for step_id, count in step_id_count.items()
        if count > 1
    ]


def find_dangling_next(program: Program) -> List[Violation]:
    step_ids = {step.step_id for step in program.steps}
    return [
        Violation(
            DANGLING_NEXT,
            f"Step '{step.step_id}' references next step '{step.next_step}' which does not exist",
            step.step_id,
        )
        for step in program.steps
        if step.next_step is not None and step.next_step not in step_ids
    ]


def find_dangling_assets(program: Program, assets: Mapping[str, Asset]) -> List[Violation]:
    errors = []
    for step in program.steps:
        for reference in step.assets:
            if reference not in assets:
                errors.append(
                    Violation(
                        DANGLING_ASSET,
                        f"Step '{step.step_id}' references asset '{reference}' which is not bundled",
                        step.step_id,
                    )
                )
    return errors


def find_negative_durations(program: Program) -> List[Violation]:
    errors = []
    if program.default_duration is not None and program.default_duration < 0:
        errors.append(
            Violation(
                NEGATIVE_DURATION,
                f"Program default_duration is {program.default_duration} seconds",
            )
        )
    for step in program.steps:
        if step.duration < 0:
            errors.append(
                Violation(
                    NEGATIVE_DURATION,
                    f"Step '{step.step_id}' has negative duration {step.duration} seconds",
                    step.step_id,
                )
            )
    return errors


def find_cycles(program: Program) -> List[List[int]]:
    """
    Find every cycle in the step graph.

    Each step has at most one successor, so every cycle is found by
    walking forward from each unvisited step until the walk reaches a
    step it has already seen.

    Returns:
        List of cycles, each a list of step indexes in walk order
    """
    successors = program.successors()
    state = [0] * len(successors)  # 0 = unvisited, 1 = on current walk, 2 = done
    cycles = []

    for start in range(len(successors)):
        walk = []
        current: Optional[int] = start
        while current is not None and state[current] == 0:
            state[current] = 1
            walk.append(current)
            current = successors[current]

        if current is not None and state[current] == 1:
            cycles.append(walk[walk.index(current):])

        for index in walk:
            state[index] = 2

    return cycles


def find_unreachable_steps(program: Program) -> List[int]:
    """Indexes of steps that cannot be reached from the first step."""
    if not program.steps:
        return []

    successors = program.successors()
    reached = set()
    current: Optional[int] = 0
    while current is not None and current not in reached:
        reached.add(current)
        current = successors[current]

    return [index for index in range(len(program.steps)) if index not in reached]


def validate_program(
    program: Program, assets: Mapping[str, Asset], allow_cycles: bool = True
) -> List[Violation]:
    """
    Validate a program and its resolved assets.

    Args:
        program: The parsed program
        assets: Resolved assets keyed by identifier
        allow_cycles: Whether ``next`` references may loop back

    Returns:
        List of violations, ordered by class (empty if the program is valid)
    """
    errors = []
    errors.extend(find_duplicate_ids(program))
    errors.extend(find_dangling_next(program))
    errors.extend(find_dangling_assets(program, assets))
    errors.extend(find_negative_durations(program))

    graph_is_sound = not any(e.kind in (DUPLICATE_ID, DANGLING_NEXT) for e in errors)
    if not graph_is_sound:
        return errors

    if not allow_cycles:
        for cycle in find_cycles(program):
            names = [program.steps[index].step_id for index in cycle]
            loop = " -> ".join(names + [names[0]])
            errors.append(
                Violation(CYCLE, f"Steps form a loop: {loop}", names[0])
            )

    for index in find_unreachable_steps(program):
        logger.warning(
            "Step '%s' can never be reached from the first step",
            program.steps[index].step_id,
        )

    return errors


def check_program(
    program: Program, assets: Mapping[str, Asset], allow_cycles: bool = True
):
    """
    Validate a program, raising on any violation.

    Raises:
        ValidationError: Carrying every violation found
    """
    errors = validate_program(program, assets, allow_cycles)
    if errors:
        raise ValidationError(errors)
