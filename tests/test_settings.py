import json
import os
from types import SimpleNamespace

import pytest

import fieldthemes.utils.blender_helpers as helpers


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(helpers, "bpy", None, raising=True)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("APPDATA", raising=False)
    for name in (helpers.ENV_THEMES_DIR, helpers.ENV_TEMPLATES_DIR, helpers.ENV_AUTHORING_COLLECTION):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def _write_config(root, data):
    cfg_dir = root / "xdg" / "fieldthemes"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    (cfg_dir / "config.json").write_text(json.dumps(data), encoding="utf-8")


def test_defaults_live_under_config_dir(isolated_config):
    settings = helpers.get_settings()

    cfg_dir = str(isolated_config / "xdg" / "fieldthemes")
    assert helpers.get_config_dir() == cfg_dir
    assert settings.themes_dir == os.path.join(cfg_dir, "themes")
    assert settings.templates_dir == os.path.join(cfg_dir, "templates")
    assert settings.authoring_collection == "ThemeAuthoring"
    assert (settings.grid_width, settings.grid_height, settings.hex_radius) == (5, 8, 0.5)


def test_config_file_fills_missing_values(isolated_config):
    _write_config(isolated_config, {
        "themes_dir": str(isolated_config / "cfg_themes"),
        "grid_width": 7,
        "hex_radius": "0.75",
        "grid_height": "tall",
    })

    settings = helpers.get_settings()

    assert settings.themes_dir == str(isolated_config / "cfg_themes")
    assert settings.grid_width == 7
    assert settings.hex_radius == 0.75
    assert settings.grid_height == 8


def test_environment_beats_config_file(isolated_config, monkeypatch):
    _write_config(isolated_config, {"themes_dir": "/from/config", "authoring_collection": "FromConfig"})
    monkeypatch.setenv(helpers.ENV_THEMES_DIR, str(isolated_config / "env_themes"))
    monkeypatch.setenv(helpers.ENV_AUTHORING_COLLECTION, "FromEnv")

    settings = helpers.get_settings()

    assert settings.themes_dir == str(isolated_config / "env_themes")
    assert settings.authoring_collection == "FromEnv"


def test_preferences_beat_environment(isolated_config, monkeypatch):
    monkeypatch.setenv(helpers.ENV_THEMES_DIR, "/from/env")
    monkeypatch.setenv(helpers.ENV_TEMPLATES_DIR, str(isolated_config / "env_templates"))
    prefs = SimpleNamespace(
        themes_dir=str(isolated_config / "pref_themes"),
        templates_dir="",
        authoring_collection="Decor",
        grid_width=6,
        grid_height=10,
        hex_radius=1.0,
    )
    monkeypatch.setattr(helpers, "get_addon_prefs", lambda: prefs, raising=True)

    settings = helpers.get_settings()

    assert settings.themes_dir == str(isolated_config / "pref_themes")
    # Empty preference falls through to the environment
    assert settings.templates_dir == str(isolated_config / "env_templates")
    assert settings.authoring_collection == "Decor"
    assert (settings.grid_width, settings.grid_height, settings.hex_radius) == (6, 10, 1.0)


def test_unreadable_config_is_ignored(isolated_config):
    cfg_dir = isolated_config / "xdg" / "fieldthemes"
    cfg_dir.mkdir(parents=True)
    (cfg_dir / "config.json").write_text("{broken", encoding="utf-8")

    assert helpers.get_settings().authoring_collection == "ThemeAuthoring"


def test_addon_prefs_unavailable_without_blender(isolated_config):
    assert helpers.get_addon_prefs() is None


def test_set_status_is_safe():
    scene = SimpleNamespace(fieldthemes_status="")
    helpers.set_status(SimpleNamespace(scene=scene), "Saved")
    assert scene.fieldthemes_status == "Saved"
    helpers.set_status(None, "ignored")
    helpers.set_status(SimpleNamespace(scene=SimpleNamespace()), "no property")
