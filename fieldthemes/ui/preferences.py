# Field Themes Preferences panel for paths and field layout

import bpy
from bpy.props import FloatProperty, IntProperty, StringProperty


def _settings_changed(self, context) -> None:
    # The next operator builds a fresh session from the new settings
    from ..core.session import reset_controller

    reset_controller()


# Add-on preferences class
class FieldThemesPreferences(bpy.types.AddonPreferences):
    bl_idname = __package__.split(".")[0]  # Points to main add-on package

    themes_dir: StringProperty(
        name="Themes Folder",
        description="Where theme records (.json) are saved and loaded. Empty: env/config file/default",
        default="",
        subtype='DIR_PATH',
        update=_settings_changed,
    )
    templates_dir: StringProperty(
        name="Templates Folder",
        description="Root folder of template .blend files. Empty: env/config file/default",
        default="",
        subtype='DIR_PATH',
        update=_settings_changed,
    )
    authoring_collection: StringProperty(
        name="Authoring Collection",
        description="Collection scanned for theme objects",
        default="ThemeAuthoring",
        update=_settings_changed,
    )

    # Field layout (must match the game board)
    grid_width: IntProperty(
        name="Grid Width",
        description="Hex columns on the field",
        default=5,
        min=1,
        max=64,
        update=_settings_changed,
    )
    grid_height: IntProperty(
        name="Grid Height",
        description="Hex rows on the field (player and enemy halves)",
        default=8,
        min=2,
        max=64,
        update=_settings_changed,
    )
    hex_radius: FloatProperty(
        name="Hex Radius",
        description="Outer radius of one hex tile",
        default=0.5,
        min=0.01,
        max=100.0,
        soft_min=0.1,
        soft_max=5.0,
        update=_settings_changed,
    )

    def draw(self, context: bpy.types.Context) -> None:
        layout = self.layout

        box = layout.box()
        box.label(text="Folders:")
        box.prop(self, "themes_dir")
        box.prop(self, "templates_dir")
        box.prop(self, "authoring_collection")

        layout.separator()
        gbox = layout.box()
        gbox.label(text="Field Layout:")
        gbox.prop(self, "grid_width")
        gbox.prop(self, "grid_height")
        gbox.prop(self, "hex_radius")

        layout.separator()
        layout.label(text="Empty folders fall back to FIELDTHEMES_THEMES_DIR / FIELDTHEMES_TEMPLATES_DIR,")
        layout.label(text="then config.json in the Field Themes config directory.")


# Registration
def register() -> None:
    bpy.utils.register_class(FieldThemesPreferences)


def unregister() -> None:
    bpy.utils.unregister_class(FieldThemesPreferences)
