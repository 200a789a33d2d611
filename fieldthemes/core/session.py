# Editor session singleton
#
# UI operators share one controller per Blender session so the working list and the
# loaded record survive between button presses. Changing paths or grid settings in the
# preferences drops the session (see ui.preferences).

from __future__ import annotations

import logging
from typing import Optional

from .controller import ThemeEditorController
from .theme_store import ThemeStore
from .zones import FieldLayout

logger = logging.getLogger(__name__)

_SINGLETON: Optional[ThemeEditorController] = None


def build_controller(settings=None) -> ThemeEditorController:
    """Wire a controller against the Blender scene using resolved settings."""
    from ..scene.blender_host import BlenderSceneHost, BlenderTemplateLibrary
    from ..utils.blender_helpers import get_settings

    settings = settings or get_settings()
    host = BlenderSceneHost(settings.templates_dir)
    library = BlenderTemplateLibrary(settings.templates_dir)
    store = ThemeStore(library, themes_dir=settings.themes_dir)
    layout = FieldLayout(
        grid_width=settings.grid_width,
        grid_height=settings.grid_height,
        hex_radius=settings.hex_radius,
    )
    logger.info(f"Theme editor session: themes={settings.themes_dir} templates={settings.templates_dir}")
    return ThemeEditorController(host, library, store, layout=layout, root=settings.authoring_collection)


def get_controller() -> ThemeEditorController:
    """
    Module-level singleton to ensure the working list and loaded record are shared
    across UI operators within the Blender session.
    """
    global _SINGLETON
    if _SINGLETON is None:
        _SINGLETON = build_controller()
    return _SINGLETON


def reset_controller() -> None:
    global _SINGLETON
    if _SINGLETON is not None:
        logger.debug("Theme editor session reset")
    _SINGLETON = None


def current_controller() -> Optional[ThemeEditorController]:
    """The active session, if any. Panels use this so drawing never builds a session."""
    return _SINGLETON
