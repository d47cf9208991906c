"""
Integration tests for the create and extract pipelines.
"""

import os

import pytest

from ptimer_cli.config import PackagerConfig
from ptimer_cli.container_reader import read_container
from ptimer_cli.errors import CorruptPackageError, ParseError, SchemaVersionError, ValidationError
from ptimer_cli.pipeline import (
    PipelineRun,
    Stage,
    check_source,
    create,
    extract,
    inspect_container,
)

from conftest import PNG_BYTES, SOUND_BYTES, write_document


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


@pytest.mark.integration
class TestCreate:
    """Test compiling description documents."""

    def test_pomodoro_scenario(self, temp_dir, pomodoro_source):
        output = os.path.join(temp_dir, "pomodoro.ptimer")

        result = create(pomodoro_source, output)

        assert result.steps == 3
        assert result.assets == 0
        program, assets = read_container(output)
        assert [s.step_id for s in program.steps] == ["Prep", "Work", "Break"]
        assert [s.duration for s in program.steps] == [300, 1500, 300]
        assert program.steps[0].title == "Prepare"
        assert assets == {}

    def test_create_is_deterministic(self, temp_dir, media_source):
        first = os.path.join(temp_dir, "first.ptimer")
        second = os.path.join(temp_dir, "second.ptimer")

        create(media_source, first)
        create(media_source, second)

        assert read_bytes(first) == read_bytes(second)

    def test_shared_asset_is_stored_once(self, media_container):
        program, assets = read_container(media_container)

        assert sorted(assets) == ["icons/coffee.png", "sounds/bell.mp3"]
        assert assets["icons/coffee.png"].data == PNG_BYTES
        assert program.steps[0].assets == ["icons/coffee.png", "sounds/bell.mp3"]
        assert program.steps[1].assets == ["sounds/bell.mp3"]

    def test_validation_failure_writes_nothing(self, temp_dir, source_dir):
        source = write_document(
            source_dir,
            "broken.yaml",
            {
                "title": "Broken",
                "steps": [
                    {"id": "a", "duration": 10},
                    {"id": "a", "duration": 10},
                    {"id": "b", "duration": 10, "next": "missing"},
                    {"id": "c", "duration": -5},
                ],
            },
        )
        output = os.path.join(temp_dir, "broken.ptimer")
        run = PipelineRun("create")

        with pytest.raises(ValidationError) as excinfo:
            create(source, output, run=run)

        assert len(excinfo.value.violations) == 3
        assert run.stage is Stage.FAILED
        assert run.failed_stage is Stage.VALIDATING
        assert not os.path.exists(output)
        assert os.listdir(temp_dir) == ["source"]

    def test_missing_asset(self, temp_dir, source_dir):
        source = write_document(
            source_dir,
            "lost.yaml",
            {"title": "Lost", "steps": [{"id": "a", "duration": 1, "assets": ["gone.ogg"]}]},
        )
        run = PipelineRun("create")

        with pytest.raises(FileNotFoundError):
            create(source, os.path.join(temp_dir, "lost.ptimer"), run=run)

        assert run.failed_stage is Stage.READING

    def test_forbidden_cycle(self, temp_dir, media_source):
        config = PackagerConfig(allow_cycles=False)

        with pytest.raises(ValidationError) as excinfo:
            create(media_source, os.path.join(temp_dir, "loop.ptimer"), config)

        assert excinfo.value.violations[0].kind == "cycle"

    def test_parse_error_propagates(self, temp_dir, source_dir):
        source = os.path.join(source_dir, "bad.yaml")
        with open(source, "w") as f:
            f.write("title: t\nsteps:\n  - id: a\n    duration: 1\n    sound: bell.mp3\n")

        with pytest.raises(ParseError):
            create(source, os.path.join(temp_dir, "bad.ptimer"))

    def test_successful_run_is_done(self, temp_dir, pomodoro_source):
        run = PipelineRun("create")

        create(pomodoro_source, os.path.join(temp_dir, "p.ptimer"), run=run)

        assert run.stage is Stage.DONE
        assert run.failed_stage is None


@pytest.mark.integration
class TestExtract:
    """Test unpacking containers and round-tripping them."""

    def test_pomodoro_round_trip(self, temp_dir, pomodoro_container):
        output_dir = os.path.join(temp_dir, "extracted")

        result = extract(pomodoro_container, output_dir)

        assert result.assets == 0
        assert os.listdir(output_dir) == ["program.yaml"]
        summary = check_source(result.output)
        assert summary["steps"] == 3
        assert summary["totalSeconds"] == 2100

    @pytest.mark.parametrize("document_format", ["yaml", "json"])
    def test_round_trip_preserves_relations(self, temp_dir, media_container, document_format):
        output_dir = os.path.join(temp_dir, "extracted")
        recompiled = os.path.join(temp_dir, "again.ptimer")

        result = extract(
            media_container, output_dir, PackagerConfig(document_format=document_format)
        )
        create(result.output, recompiled)

        original_program, original_assets = read_container(media_container)
        program, assets = read_container(recompiled)
        assert program == original_program
        assert assets == original_assets
        with open(os.path.join(output_dir, "sounds", "bell.mp3"), "rb") as f:
            assert f.read() == SOUND_BYTES

    def test_round_trip_is_byte_identical(self, temp_dir, media_container):
        output_dir = os.path.join(temp_dir, "extracted")
        recompiled = os.path.join(temp_dir, "again.ptimer")

        result = extract(media_container, output_dir)
        create(result.output, recompiled)

        assert read_bytes(recompiled) == read_bytes(media_container)

    def test_round_trip_with_asset_named_like_document(self, temp_dir, source_dir):
        with open(os.path.join(source_dir, "program.yaml"), "w") as f:
            f.write("not: a program\n")
        source = write_document(
            source_dir,
            "timer.yaml",
            {"title": "Nested", "steps": [{"id": "a", "duration": 5, "assets": ["program.yaml"]}]},
        )
        container_path = os.path.join(temp_dir, "nested.ptimer")
        recompiled = os.path.join(temp_dir, "again.ptimer")
        create(source, container_path)

        result = extract(container_path, os.path.join(temp_dir, "extracted"))
        create(result.output, recompiled)

        assert result.output.name == "program-1.yaml"
        assert read_bytes(recompiled) == read_bytes(container_path)

    def test_truncated_container(self, temp_dir, pomodoro_container):
        data = read_bytes(pomodoro_container)
        with open(pomodoro_container, "wb") as f:
            f.write(data[:-5])
        output_dir = os.path.join(temp_dir, "extracted")

        with pytest.raises(CorruptPackageError):
            extract(pomodoro_container, output_dir)

        assert not os.path.exists(output_dir)

    def test_future_version(self, temp_dir, pomodoro_container):
        data = bytearray(read_bytes(pomodoro_container))
        data[8:12] = (7).to_bytes(4, "little")
        with open(pomodoro_container, "wb") as f:
            f.write(bytes(data))

        with pytest.raises(SchemaVersionError):
            extract(pomodoro_container, os.path.join(temp_dir, "extracted"))


@pytest.mark.integration
def test_inspect_container(media_container):
    summary = inspect_container(media_container)

    assert summary["schemaVersion"] == 1
    assert summary["title"] == "Coffee Break"
    assert [s["id"] for s in summary["steps"]] == ["grind", "brew", "drink"]
    assert summary["steps"][0]["duration"] == 90
    assert summary["steps"][2]["duration"] == 60
    assert summary["steps"][2]["next"] == "grind"
    assert {a["id"] for a in summary["assets"]} == {"icons/coffee.png", "sounds/bell.mp3"}
