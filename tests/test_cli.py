"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from fingerspelling.cli import app
from fingerspelling.config import DetectorConfig
from fingerspelling.observation import HandObservation, Volume
from fingerspelling.recorder import ObservationRecorder
from fingerspelling.store import JsonTemplateStore

runner = CliRunner()

SQUARE = [(-5, -5, 0), (5, -5, 0), (5, 5, 0), (-5, 5, 0)]


def make_observation(fingers=1, offset=(100, 100, 700)):
    dx, dy, dz = offset
    return HandObservation(
        contour=[(x + dx, y + dy, z + dz) for x, y, z in SQUARE],
        finger_count=fingers,
        location=offset,
        volume=Volume(width=50, height=50, depth=20),
    )


@pytest.fixture
def recording(tmp_path):
    rec = ObservationRecorder()
    rec.start()
    rec.add(make_observation(fingers=2))
    rec.add(make_observation(fingers=1))
    rec.add(None)
    rec.stop()
    path = tmp_path / "session.json"
    rec.save(path)
    return path


class TestTemplateCommands:
    def test_record_last_hand(self, tmp_path, recording):
        templates = tmp_path / "gestures"
        result = runner.invoke(app, ["record", "A", str(recording), "-t", str(templates)])
        assert result.exit_code == 0, result.output
        assert "Saved 'a'" in result.output
        assert JsonTemplateStore(templates).read_by_name("a").finger_count == 1

    def test_record_specific_frame(self, tmp_path, recording):
        templates = tmp_path / "gestures"
        result = runner.invoke(app, ["record", "b", str(recording), "-t", str(templates), "--frame", "0"])
        assert result.exit_code == 0, result.output
        assert JsonTemplateStore(templates).read_by_name("b").finger_count == 2

    def test_record_empty_frame(self, tmp_path, recording):
        result = runner.invoke(app, ["record", "c", str(recording), "-t", str(tmp_path), "--frame", "2"])
        assert result.exit_code == 1

    def test_list_show_delete(self, tmp_path, recording):
        templates = str(tmp_path / "gestures")
        runner.invoke(app, ["record", "a", str(recording), "-t", templates])

        result = runner.invoke(app, ["list", "-t", templates])
        assert result.exit_code == 0
        assert "a" in result.output

        result = runner.invoke(app, ["show", "A", "-t", templates])
        assert result.exit_code == 0
        assert json.loads(result.output)["finger_count"] == 1

        result = runner.invoke(app, ["delete", "a", "-t", templates])
        assert result.exit_code == 0
        result = runner.invoke(app, ["show", "a", "-t", templates])
        assert result.exit_code == 1

    def test_list_empty(self, tmp_path):
        result = runner.invoke(app, ["list", "-t", str(tmp_path / "none")])
        assert result.exit_code == 0
        assert "No templates" in result.output


class TestDetectCommand:
    def test_detect_runs(self, tmp_path, recording):
        templates = str(tmp_path / "gestures")
        runner.invoke(app, ["record", "a", str(recording), "-t", templates])

        result = runner.invoke(app, ["detect", str(recording), "-t", templates, "--speed", "100"])
        assert result.exit_code == 0, result.output
        assert "1 templates loaded" in result.output
        assert "Replay complete" in result.output

    def test_detect_catalog_failure(self, tmp_path, recording):
        templates = tmp_path / "gestures"
        templates.mkdir()
        (templates / "broken.json").write_text("{")

        result = runner.invoke(app, ["detect", str(recording), "-t", str(templates)])
        assert result.exit_code == 1
        assert "Could not load templates" in result.output

    def test_detect_missing_recording(self, tmp_path):
        result = runner.invoke(app, ["detect", str(tmp_path / "nope.json")])
        assert result.exit_code == 1

    def test_detect_bad_interval(self, tmp_path, recording):
        result = runner.invoke(app, ["detect", str(recording), "--interval", "0"])
        assert result.exit_code == 1


class TestInitConfig:
    def test_writes_defaults(self, tmp_path):
        path = tmp_path / "detector.yml"
        result = runner.invoke(app, ["init-config", str(path)])
        assert result.exit_code == 0
        assert DetectorConfig.from_yaml(path) == DetectorConfig()
