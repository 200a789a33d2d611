# Field Themes: compose decorative scenery around the battle field and save it as themes
#
# This add-on scans objects placed around the field layout, links them to reusable
# templates (.blend library collections), and saves/updates named theme records that
# the game applies at runtime.
#
# License: MIT
# Compatible with Blender 4.0+

import logging

# Add-on metadata
bl_info = {
    "name": "Field Themes",
    "author": "Field Themes contributors",
    "description": "Author battlefield decoration themes from placed scene objects",
    "blender": (4, 0, 0),
    "version": (0, 1, 0),
    "location": "3D Viewport Sidebar (N-panel) > Themes tab",
    "category": "Scene",
    "support": "COMMUNITY",
}

# Global logger for the add-on
logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

# Handler to Blender console (if available) or stdout
handler = logging.StreamHandler()
handler.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)


def register():
    """Register the add-on components."""
    logger.info("Registering Field Themes add-on...")
    # Lazy import to avoid loading bpy/UI in non-Blender environments and tests
    from . import ui, core, scene, utils

    ui.register()
    core.register()
    scene.register()
    utils.register()

    logger.info("Field Themes add-on registered successfully.")


def unregister():
    """Unregister the add-on components."""
    logger.info("Unregistering Field Themes add-on...")
    from . import ui, core, scene, utils

    # Unregister in reverse order
    utils.unregister()
    scene.unregister()
    core.unregister()
    ui.unregister()

    logger.info("Field Themes add-on unregistered.")


# Blender calls this on add-on load
if __name__ == "__main__":
    register()
