# Utility helpers for Blender context and preferences for Field Themes
#
# Responsibilities:
# - Safe access to Blender AddonPreferences when bpy is available
# - Fallback to environment variables and optional local config files when not
# - Cross-platform config path resolution (Windows/macOS/Linux)
# - UI helpers for status text kept lightweight and safe
#
# Environment variables supported:
#   FIELDTHEMES_THEMES_DIR, FIELDTHEMES_TEMPLATES_DIR, FIELDTHEMES_AUTHORING_COLLECTION
#
# Optional config file (JSON) search order:
#   1) %APPDATA%/FieldThemes/config.json (Windows)
#   2) ~/.config/fieldthemes/config.json (Linux/XDG default)
#   3) ~/Library/Application Support/FieldThemes/config.json (macOS)
#   4) ~/.fieldthemes/config.json (legacy fallback)

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List

from ..core.scanner import AUTHORING_ROOT

try:
    import bpy  # type: ignore
except Exception:
    bpy = None  # Allows import outside Blender for tooling/tests and CI

logger = logging.getLogger(__name__)

# The add-on module name as installed by Blender. Must match the top-level package.
ADDON_ID = "fieldthemes"

ENV_THEMES_DIR = "FIELDTHEMES_THEMES_DIR"
ENV_TEMPLATES_DIR = "FIELDTHEMES_TEMPLATES_DIR"
ENV_AUTHORING_COLLECTION = "FIELDTHEMES_AUTHORING_COLLECTION"


@dataclass(frozen=True)
class EditorSettings:
    themes_dir: str
    templates_dir: str
    authoring_collection: str = AUTHORING_ROOT
    grid_width: int = 5
    grid_height: int = 8
    hex_radius: float = 0.5


def _config_paths() -> List[str]:
    paths: List[str] = []
    # Windows
    appdata = os.environ.get("APPDATA")
    if appdata:
        paths.append(os.path.join(appdata, "FieldThemes", "config.json"))
    # Linux (XDG)
    home = os.path.expanduser("~")
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.join(home, ".config"))
    paths.append(os.path.join(xdg_config_home, "fieldthemes", "config.json"))
    # macOS
    paths.append(os.path.join(home, "Library", "Application Support", "FieldThemes", "config.json"))
    # Legacy fallback
    paths.append(os.path.join(home, ".fieldthemes", "config.json"))
    return paths


def _load_config_file() -> Dict[str, Any]:
    for path in _config_paths():
        try:
            if os.path.isfile(path):
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        return data
        except (OSError, ValueError) as ex:
            logger.warning(f"Failed reading config file {path}: {ex}")
    return {}


def get_config_dir() -> str:
    """
    Resolve and ensure the Field Themes config directory exists, following the same
    platform-specific search order as _config_paths(), but returning a directory.
    """
    for d in [os.path.dirname(p) for p in _config_paths()]:
        try:
            os.makedirs(d, exist_ok=True)
            return d
        except OSError:
            continue
    # Fallback to legacy directory under home
    fallback = os.path.join(os.path.expanduser("~"), ".fieldthemes")
    os.makedirs(fallback, exist_ok=True)
    return fallback


def get_addon_prefs():
    """
    Return the Field Themes AddonPreferences instance or None if unavailable.
    """
    if bpy is None:
        logger.debug("bpy not available; get_addon_prefs returning None")
        return None

    try:
        prefs = getattr(bpy.context, "preferences", None)
        if not prefs:
            return None
        addon = prefs.addons.get(ADDON_ID)
        if not addon:
            return None
        return getattr(addon, "preferences", None)
    except Exception as ex:
        logger.warning(f"Failed to get add-on preferences: {ex}")
        return None


def _pick_str(pref_value: Any, env_name: str, cfg: Dict[str, Any], cfg_key: str) -> str:
    value = str(pref_value or "").strip()
    if not value:
        value = (os.environ.get(env_name) or "").strip()
    if not value:
        value = str(cfg.get(cfg_key, "") or "").strip()
    return value


def _pick_num(pref_value: Any, cfg: Dict[str, Any], cfg_key: str, default, cast):
    for raw in (pref_value, cfg.get(cfg_key)):
        if raw is None or isinstance(raw, bool):
            continue
        try:
            return cast(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid {cfg_key} setting: {raw!r}")
    return default


def get_settings() -> EditorSettings:
    """
    Resolve editor settings with precedence:
      1) Blender AddonPreferences (if available and non-empty)
      2) Environment variables
      3) Config file
      4) Defaults under the config directory
    """
    prefs = get_addon_prefs()
    cfg = _load_config_file()

    def pref(name: str):
        return getattr(prefs, name, None) if prefs is not None else None

    themes_dir = _pick_str(pref("themes_dir"), ENV_THEMES_DIR, cfg, "themes_dir")
    templates_dir = _pick_str(pref("templates_dir"), ENV_TEMPLATES_DIR, cfg, "templates_dir")
    collection = _pick_str(pref("authoring_collection"), ENV_AUTHORING_COLLECTION, cfg, "authoring_collection")

    if not themes_dir or not templates_dir:
        base = get_config_dir()
        themes_dir = themes_dir or os.path.join(base, "themes")
        templates_dir = templates_dir or os.path.join(base, "templates")

    if bpy is not None:
        # Blender-relative paths ("//themes") are resolved against the open .blend file
        themes_dir = bpy.path.abspath(themes_dir)
        templates_dir = bpy.path.abspath(templates_dir)

    settings = EditorSettings(
        themes_dir=os.path.abspath(os.path.expanduser(themes_dir)),
        templates_dir=os.path.abspath(os.path.expanduser(templates_dir)),
        authoring_collection=collection or AUTHORING_ROOT,
        grid_width=_pick_num(pref("grid_width"), cfg, "grid_width", 5, int),
        grid_height=_pick_num(pref("grid_height"), cfg, "grid_height", 8, int),
        hex_radius=_pick_num(pref("hex_radius"), cfg, "hex_radius", 0.5, float),
    )
    logger.debug(f"Settings resolved: {settings}")
    return settings


def set_status(context, text: str) -> None:
    """
    Safely set the Field Themes status text on the scene, if the property exists.
    """
    if not context:
        return
    try:
        scene = getattr(context, "scene", None)
        if scene and hasattr(scene, "fieldthemes_status"):
            scene.fieldthemes_status = text
    except Exception as ex:
        logger.debug(f"Failed to set status: {ex}")


def register():
    # No classes to register in utils
    pass


def unregister():
    # No classes to unregister in utils
    pass
