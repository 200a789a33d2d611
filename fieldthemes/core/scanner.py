# Field Themes scene scanner
#
# Turns live objects under the authoring root into WorkingPlacements. Placements are
# ephemeral: they live for one editing session and are never persisted directly.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..scene.host import ONE, ZERO, ObjectHandle, ObjectInfo, SceneHost
from .errors import InvalidatedReference
from .zones import FieldLayout, Vec3, Zone

logger = logging.getLogger(__name__)

# Default scene layout names
AUTHORING_ROOT = "ThemeAuthoring"
LOADED_CONTAINER = "LoadedThemeObjects"
PREVIEW_CONTAINER = "ZonePreview"

# Objects created by the editor itself, never part of a theme
EXCLUDED_PREFIXES = ("Zone_", "Hex_", "BenchSlot")
EXCLUDED_NAMES = {
    PREVIEW_CONTAINER,
    LOADED_CONTAINER,
    "HexPreview",
    "BenchPreview",
    "GroundPreview",
    "ReferenceGround",
}
EXCLUDED_KINDS = {"CAMERA", "LIGHT", "LIGHT_PROBE", "SPEAKER"}


@dataclass
class WorkingPlacement:
    object_name: str
    handle: Optional[ObjectHandle]
    zone: Zone = Zone.GROUND
    position_offset: Vec3 = ZERO
    rotation: Vec3 = ZERO
    scale: Vec3 = ONE
    template: Optional[str] = None
    is_template_instance: bool = False

    def __post_init__(self) -> None:
        # Never carry a null/unknown zone
        self.zone = Zone.parse(self.zone)

    @property
    def status(self) -> str:
        """Panel status glyph: linked, instance (auto-links), or needs a template."""
        if self.template is not None:
            return "✓"
        return "◐" if self.is_template_instance else "○"


def is_eligible(info: ObjectInfo, parent_info: Optional[ObjectInfo]) -> bool:
    """
    Decide whether an object is a theme placement.

    Root objects with geometry qualify. Children qualify only when their parent is a
    plain grouping empty at the root; children of anything that renders are parts of
    a larger object and are represented by that object.
    """
    name = info.name or ""
    if name.startswith(EXCLUDED_PREFIXES) or name in EXCLUDED_NAMES:
        return False
    if info.kind in EXCLUDED_KINDS:
        return False
    if not info.has_geometry:
        return False
    if info.parent is None:
        # Root grouping empty: its children are the placements
        if not info.own_geometry and not info.is_instance and info.child_geometry and info.kind == "EMPTY":
            return False
        return True
    if parent_info is None:
        return False
    if parent_info.own_geometry or parent_info.is_instance:
        return False
    return parent_info.parent is None


class SceneScanner:
    """Enumerates eligible live objects and builds WorkingPlacements tagged with zones."""

    def __init__(self, host: SceneHost, layout: Optional[FieldLayout] = None, root: str = AUTHORING_ROOT) -> None:
        self.host = host
        self.layout = layout or FieldLayout()
        self.root = root

    def scan(self) -> List[WorkingPlacement]:
        placements: List[WorkingPlacement] = []
        for handle in self.host.iter_objects(self.root):
            try:
                info = self.host.describe(handle)
                parent_info = self.host.describe(info.parent) if info.parent is not None else None
                if not is_eligible(info, parent_info):
                    continue
                placement = self.capture(handle, info.name)
            except InvalidatedReference as ex:
                # Object vanished mid-scan; nothing to capture
                logger.debug(f"scan: skipping {handle}: {ex}")
                continue
            placements.append(placement)
            logger.debug(f"Found object '{placement.object_name}' at {placement.position_offset} -> {placement.zone.value}")

        logger.info(f"Scanned {len(placements)} objects under '{self.root}'.")
        return placements

    def capture(self, handle: ObjectHandle, name: str) -> WorkingPlacement:
        t = self.host.get_transform(handle)
        offset = self.layout.to_local(t.position)
        return WorkingPlacement(
            object_name=name,
            handle=handle,
            zone=self.layout.classify(offset),
            position_offset=offset,
            rotation=tuple(t.rotation),
            scale=tuple(t.scale),
        )
