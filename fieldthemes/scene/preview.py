# Zone marker preview
#
# Places one locator per zone so the designer can see where each region sits relative
# to the field. Markers live in their own container under the authoring root and are
# named Zone_<Name>, which the scanner ignores.

from __future__ import annotations

import logging
from typing import List

from ..core.scanner import PREVIEW_CONTAINER
from ..core.zones import FieldLayout, Zone
from .host import ObjectHandle, SceneHost

logger = logging.getLogger(__name__)


def marker_name(zone: Zone) -> str:
    return "Zone_" + zone.label.replace(" ", "")


def generate_zone_markers(host: SceneHost, layout: FieldLayout, root: str) -> List[ObjectHandle]:
    """Rebuild the zone marker container. The catch-all ground zone has no marker."""
    container = host.ensure_container(PREVIEW_CONTAINER, parent=root)
    removed = host.clear_container(container)
    if removed:
        logger.debug(f"Cleared {removed} old zone markers")

    handles: List[ObjectHandle] = []
    for zone, position in layout.markers():
        if zone == Zone.GROUND:
            continue
        handles.append(host.create_marker(marker_name(zone), layout.to_world(position), container))
    logger.info(f"Generated {len(handles)} zone markers in '{container}'")
    return handles
