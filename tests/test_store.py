"""Tests for the JSON template store."""

import json

import pytest

from fingerspelling.errors import TemplateLoadError, TemplateNotFoundError, TemplateSaveError
from fingerspelling.geometry import Point
from fingerspelling.observation import HandObservation, Volume
from fingerspelling.store import JsonTemplateStore, normalize_name
from fingerspelling.templates import GestureTemplate


def make_template(name="A", fingers=2):
    return GestureTemplate(
        name=name,
        finger_count=fingers,
        centroid=Point(100, 120, 800),
        contour_points=(Point(90, 110, 800), Point(110, 110, 801), Point(100, 135, 799)),
    )


class TestNormalizeName:
    def test_lower_cases(self):
        assert normalize_name("  Hello ") == "hello"

    @pytest.mark.parametrize("bad", ["", "   ", "../etc", "a/b", ".hidden"])
    def test_rejects_unsafe(self, bad):
        with pytest.raises(ValueError):
            normalize_name(bad)


class TestJsonTemplateStore:
    def test_save_and_read(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        key = store.save(make_template("A"))
        assert key == "a"

        loaded = store.read_by_name("a")
        assert loaded.name == "a"
        assert loaded.finger_count == 2
        assert loaded.centroid == Point(100, 120, 800)
        assert loaded.contour_points == make_template().contour_points

    def test_read_is_case_insensitive(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        store.save(make_template("Hello"))
        assert store.read_by_name("HELLO").name == "hello"

    def test_resave_overwrites(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        store.save(make_template("a", fingers=1))
        store.save(make_template("A", fingers=5))
        templates = store.fetch_all()
        assert len(templates) == 1
        assert templates[0].finger_count == 5

    def test_fetch_all_sorted_by_name(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        for name in ["c", "a", "b"]:
            store.save(make_template(name))
        assert [t.name for t in store.fetch_all()] == ["a", "b", "c"]

    def test_missing_directory_is_empty(self, tmp_path):
        store = JsonTemplateStore(tmp_path / "nope")
        assert store.fetch_all() == []

    def test_save_creates_directory(self, tmp_path):
        store = JsonTemplateStore(tmp_path / "nested" / "gestures")
        store.save(make_template())
        assert (tmp_path / "nested" / "gestures" / "a.json").exists()

    def test_not_found(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        with pytest.raises(TemplateNotFoundError):
            store.read_by_name("ghost")

    def test_not_found_is_key_error(self, tmp_path):
        with pytest.raises(KeyError):
            JsonTemplateStore(tmp_path).read_by_name("ghost")

    def test_invalid_name_on_save(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        with pytest.raises(TemplateSaveError):
            store.save(make_template("../escape"))

    def test_corrupt_file_fails_load(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        store.save(make_template("good"))
        (tmp_path / "bad.json").write_text("{not json")
        with pytest.raises(TemplateLoadError):
            store.fetch_all()

    def test_missing_field_fails_load(self, tmp_path):
        (tmp_path / "partial.json").write_text(json.dumps({"name": "partial"}))
        with pytest.raises(TemplateLoadError):
            JsonTemplateStore(tmp_path).fetch_all()

    def test_no_temp_files_left(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        store.save(make_template())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.json"]

    def test_delete(self, tmp_path):
        store = JsonTemplateStore(tmp_path)
        store.save(make_template())
        assert store.delete("A")
        assert not store.delete("A")
        assert store.fetch_all() == []


class TestGestureTemplate:
    def test_from_observation(self):
        observation = HandObservation(
            contour=[(1, 2, 3), (4, 5, 6)],
            finger_count=3,
            location=(2.5, 3.5, 4.5),
            volume=Volume(width=40, height=60, depth=30),
        )
        template = GestureTemplate.from_observation("b", observation)
        assert template.finger_count == 3
        assert template.centroid == Point(2.5, 3.5, 4.5)
        assert template.contour_points == (Point(1, 2, 3), Point(4, 5, 6))

    def test_dict_round_trip(self):
        template = make_template()
        assert GestureTemplate.from_dict(template.to_dict()) == template

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            make_template("  ")

    def test_negative_fingers_rejected(self):
        with pytest.raises(ValueError):
            make_template(fingers=-1)

    def test_immutable(self):
        template = make_template()
        with pytest.raises(AttributeError):
            template.name = "other"
