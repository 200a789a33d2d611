import json
import os

import pytest

from fieldthemes.core.errors import CorruptRecord, EmptyInput, NotFound, WriteConflict, WriteError
from fieldthemes.core.theme_store import DEFAULT_DESCRIPTION, ThemeEntry, ThemeRecord, ThemeStore, slugify
from fieldthemes.core.zones import Zone
from fieldthemes.scene.host import MemoryTemplateLibrary

ROCK = "themes/Meadow/Rock"
TREE = "themes/Meadow/Tree"


def _store(tmp_path, refs=(ROCK, TREE)):
    return ThemeStore(MemoryTemplateLibrary(refs), themes_dir=str(tmp_path / "themes"))


def _record(store):
    record = store.create("Meadow Morning")
    record.skip_ground_layer = True
    record.entries = [
        ThemeEntry(Zone.BACK_LEFT, ROCK, (-3.2, -4.6, 0.0), (0.0, 0.0, 45.0), (1.0, 1.0, 1.0)),
        ThemeEntry(Zone.SIDE_RIGHT, TREE, (5.0, 0.25, 0.0), (0.0, 0.0, 0.0), (1.5, 1.5, 2.0)),
    ]
    return record


def test_create_builds_unsaved_record_with_slug(tmp_path):
    store = _store(tmp_path)
    record = store.create("  Meadow Morning ")
    assert record.id == "meadow_morning"
    assert record.name == "Meadow Morning"
    assert record.description == DEFAULT_DESCRIPTION
    assert record.entries == []
    assert record.path is None
    assert slugify("Dark Forest") == "dark_forest"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_requires_name(name, tmp_path):
    with pytest.raises(EmptyInput):
        _store(tmp_path).create(name)


def test_default_path_strips_spaces(tmp_path):
    store = _store(tmp_path)
    path = store.default_path(store.create("Meadow Morning"))
    assert path == os.path.join(str(tmp_path / "themes"), "MeadowMorningTheme.json")
    assert ThemeStore(MemoryTemplateLibrary()).default_path(store.create("X")) is None


def test_persist_then_load_round_trip(tmp_path):
    store = _store(tmp_path)
    record = _record(store)
    target = str(tmp_path / "themes" / "MeadowMorningTheme.json")

    saved = store.persist(record, target)
    loaded = store.load(saved)

    assert saved == target
    assert record.path == target
    assert loaded == record
    assert loaded.path == target
    assert loaded.entries_for_zone(Zone.SIDE_RIGHT)[0].scale == (1.5, 1.5, 2.0)
    assert store.list_records() == [target]


def test_persisted_layout_is_plain_json(tmp_path):
    store = _store(tmp_path)
    target = tmp_path / "out.json"
    store.persist(_record(store), str(target))

    data = json.loads(target.read_text(encoding="utf-8"))

    assert set(data) == {"id", "name", "description", "skip_ground_layer", "skip_bench_layer", "entries"}
    assert data["entries"][0] == {
        "zone": "back_left",
        "template": ROCK,
        "position_offset": [-3.2, -4.6, 0.0],
        "rotation": [0.0, 0.0, 45.0],
        "scale": [1.0, 1.0, 1.0],
    }


def test_persist_refuses_existing_file_without_overwrite(tmp_path):
    store = _store(tmp_path)
    target = tmp_path / "Meadow.json"
    target.write_text("original", encoding="utf-8")

    with pytest.raises(WriteConflict) as exc:
        store.persist(_record(store), str(target))

    assert exc.value.path == str(target)
    assert target.read_text(encoding="utf-8") == "original"

    store.persist(_record(store), str(target), overwrite=True)
    assert json.loads(target.read_text(encoding="utf-8"))["id"] == "meadow_morning"


def test_persist_cancelled_or_bad_location(tmp_path):
    store = _store(tmp_path)
    with pytest.raises(WriteError):
        store.persist(_record(store), None)
    with pytest.raises(WriteError):
        store.persist(_record(store), str(tmp_path))


def test_persist_rejects_entries_without_template(tmp_path):
    store = _store(tmp_path)
    record = _record(store)
    record.entries.append(ThemeEntry(Zone.GROUND, ""))
    target = tmp_path / "Meadow.json"

    with pytest.raises(WriteError):
        store.persist(record, str(target))
    assert not target.exists()


def test_persist_leaves_no_temp_files(tmp_path):
    store = _store(tmp_path)
    store.persist(_record(store), str(tmp_path / "a.json"))
    store.persist(_record(store), str(tmp_path / "a.json"), overwrite=True)
    assert sorted(os.listdir(tmp_path)) == ["a.json"]


def test_failed_write_reports_write_error_and_keeps_old_file(tmp_path, monkeypatch):
    import fieldthemes.core.theme_store as ts_mod

    store = _store(tmp_path)
    target = tmp_path / "a.json"
    target.write_text("old", encoding="utf-8")

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(ts_mod.os, "replace", _boom, raising=True)

    with pytest.raises(WriteError):
        store.persist(_record(store), str(target), overwrite=True)
    assert target.read_text(encoding="utf-8") == "old"
    assert sorted(os.listdir(tmp_path)) == ["a.json"]


def test_load_missing_file(tmp_path):
    with pytest.raises(NotFound):
        _store(tmp_path).load(str(tmp_path / "nope.json"))


def test_load_unreadable_json(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptRecord):
        _store(tmp_path).load(str(bad))


def test_load_schema_violation_lists_issues(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"id": "x", "name": "X", "entries": [{"zone": "moon", "template": ROCK}]}), encoding="utf-8")

    with pytest.raises(CorruptRecord) as exc:
        _store(tmp_path).load(str(bad))

    paths = {i.path for i in exc.value.issues}
    assert "$.entries[0].zone" in paths
    assert "$.entries[0].position_offset" in paths


def test_load_fails_entirely_on_dangling_template(tmp_path):
    store = _store(tmp_path)
    target = tmp_path / "Meadow.json"
    store.persist(_record(store), str(target))

    only_rock = ThemeStore(MemoryTemplateLibrary([ROCK]))
    with pytest.raises(CorruptRecord) as exc:
        only_rock.load(str(target))

    assert [i.code for i in exc.value.issues] == ["dangling"]
    assert exc.value.issues[0].path == "$.entries[1].template"


def test_load_revalidates_in_memory_record(tmp_path):
    store = _store(tmp_path)
    record = _record(store)
    assert store.load(record) == record

    record.entries[0] = ThemeEntry(Zone.GROUND, "themes/Gone/Thing")
    with pytest.raises(CorruptRecord):
        store.load(record)


def test_record_from_dict_defaults():
    record = ThemeRecord.from_dict({"id": "a", "name": "A", "entries": [{"zone": "side_left", "template": ROCK}]})
    entry = record.entries[0]
    assert entry.zone is Zone.SIDE_LEFT
    assert entry.position_offset == (0.0, 0.0, 0.0)
    assert entry.rotation == (0.0, 0.0, 0.0)
    assert entry.scale == (1.0, 1.0, 1.0)
    assert record.skip_bench_layer is False
