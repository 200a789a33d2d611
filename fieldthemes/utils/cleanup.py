# Shared cleanup utilities for Field Themes
# Roll back a failed template write by removing only the datablocks created during the
# attempt. Used by BlenderTemplateLibrary.create_from().

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Removal order matters: objects and collections first so meshes/materials lose their users
CATEGORIES = ("objects", "collections", "meshes", "materials", "libraries")


def snapshot_datablocks(bpy_module) -> dict[str, set[str]]:
    """
    Snapshot existing datablock names per category so cleanup can target only new items.
    """
    snap: dict[str, set[str]] = {c: set() for c in CATEGORIES}
    data = getattr(bpy_module, "data", None)
    if data is None:
        return snap
    for category in CATEGORIES:
        for block in getattr(data, category, []) or []:
            nm = getattr(block, "name", None)
            if isinstance(nm, str):
                snap[category].add(nm)
    return snap


def _remove(manager, block) -> None:
    try:
        manager.remove(block, do_unlink=True)
    except TypeError:
        # Managers without do_unlink (meshes/materials in some versions, test stubs)
        manager.remove(block)


def cleanup_new_datablocks(pre_snapshot: dict[str, set[str]], bpy_module) -> int:
    """
    Remove datablocks that did not exist in pre_snapshot. Returns the number removed.
    Individual removal failures are logged and skipped so one stuck block does not
    keep the rest around.
    """
    data = getattr(bpy_module, "data", None)
    if data is None:
        return 0
    removed = 0
    for category in CATEGORIES:
        manager = getattr(data, category, None)
        if manager is None or not hasattr(manager, "remove"):
            continue
        before = pre_snapshot.get(category, set())
        current = [b for b in list(manager) if getattr(b, "name", None) not in before]
        for block in current:
            try:
                _remove(manager, block)
                removed += 1
            except Exception as ex:
                logger.warning(f"cleanup: could not remove {category} '{getattr(block, 'name', '?')}': {ex}")
    if removed:
        logger.info(f"Field Themes cleanup: removed {removed} datablocks after failed template write.")
    return removed
