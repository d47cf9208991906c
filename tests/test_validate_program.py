"""
Unit tests for program validation.
"""

import logging

import pytest

from ptimer_cli.errors import ValidationError
from ptimer_cli.models import Asset, Program, Step
from ptimer_cli.validate_program import (
    CYCLE,
    DANGLING_ASSET,
    DANGLING_NEXT,
    DUPLICATE_ID,
    NEGATIVE_DURATION,
    check_program,
    find_cycles,
    find_unreachable_steps,
    validate_program,
)


def make_program(*steps, default_duration=None):
    return Program(title="Test", steps=list(steps), default_duration=default_duration)


@pytest.mark.unit
class TestValidateProgram:
    """Test the individual violation classes."""

    def test_valid_program(self):
        program = make_program(Step("a", duration=10), Step("b", duration=0))

        assert validate_program(program, {}) == []
        check_program(program, {})

    def test_empty_program_is_valid(self):
        assert validate_program(make_program(), {}) == []

    def test_all_duplicates_reported(self):
        program = make_program(
            Step("a", duration=1),
            Step("a", duration=1),
            Step("b", duration=1),
            Step("b", duration=1),
            Step("b", duration=1),
        )
        errors = validate_program(program, {})

        assert [e.kind for e in errors] == [DUPLICATE_ID, DUPLICATE_ID]
        assert "'b' found 3 times" in errors[1].message

    def test_dangling_next(self):
        program = make_program(Step("a", duration=1, next_step="nowhere"))
        errors = validate_program(program, {})

        assert [e.kind for e in errors] == [DANGLING_NEXT]
        assert errors[0].step_id == "a"

    def test_dangling_asset(self):
        asset = Asset("sounds/bell.mp3", "audio/mpeg", b"ding")
        program = make_program(
            Step("a", duration=1, assets=["sounds/bell.mp3", "sounds/gong.mp3"])
        )
        errors = validate_program(program, {"sounds/bell.mp3": asset})

        assert [e.kind for e in errors] == [DANGLING_ASSET]
        assert "sounds/gong.mp3" in errors[0].message

    def test_negative_default_duration(self):
        errors = validate_program(make_program(default_duration=-1), {})

        assert [e.kind for e in errors] == [NEGATIVE_DURATION]

    def test_all_classes_reported_in_one_run(self):
        program = make_program(
            Step("a", duration=10),
            Step("a", duration=10),
            Step("b", duration=10, next_step="missing"),
            Step("c", duration=-5),
        )

        with pytest.raises(ValidationError) as excinfo:
            check_program(program, {})

        kinds = [v.kind for v in excinfo.value.violations]
        assert kinds == [DUPLICATE_ID, DANGLING_NEXT, NEGATIVE_DURATION]
        assert "3 violations" in str(excinfo.value)

    def test_violations_ordered_by_class(self):
        program = make_program(
            Step("x", duration=-1),
            Step("y", duration=1, assets=["gone.png"]),
            Step("z", duration=1, next_step="q"),
            Step("x", duration=1),
        )
        kinds = [v.kind for v in validate_program(program, {})]

        assert kinds == [DUPLICATE_ID, DANGLING_NEXT, DANGLING_ASSET, NEGATIVE_DURATION]


@pytest.mark.unit
class TestCycles:
    """Test the configurable cycle policy."""

    def loop_program(self):
        return make_program(
            Step("work", duration=1500),
            Step("rest", duration=300, next_step="work"),
        )

    def test_cycles_allowed_by_default(self):
        assert validate_program(self.loop_program(), {}) == []

    def test_cycles_forbidden(self):
        errors = validate_program(self.loop_program(), {}, allow_cycles=False)

        assert [e.kind for e in errors] == [CYCLE]
        assert "work -> rest -> work" in errors[0].message

    def test_self_loop(self):
        program = make_program(Step("again", duration=5, next_step="again"))

        assert find_cycles(program) == [[0]]

    def test_linear_program_has_no_cycles(self):
        program = make_program(Step("a", duration=1), Step("b", duration=1))

        assert find_cycles(program) == []

    def test_cycle_check_skipped_when_ids_are_ambiguous(self):
        program = make_program(
            Step("a", duration=1, next_step="a"),
            Step("a", duration=1),
        )
        errors = validate_program(program, {}, allow_cycles=False)

        assert [e.kind for e in errors] == [DUPLICATE_ID]


@pytest.mark.unit
def test_unreachable_steps_are_warned(caplog):
    program = make_program(
        Step("start", duration=1, next_step="end"),
        Step("skipped", duration=1),
        Step("end", duration=1),
    )

    assert find_unreachable_steps(program) == [1]
    with caplog.at_level(logging.WARNING):
        assert validate_program(program, {}) == []
    assert "skipped" in caplog.text
