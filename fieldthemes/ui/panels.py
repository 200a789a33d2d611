# Field Themes UI panels for 3D Viewport Sidebar

import bpy

from ..core.controller import EditorState
from ..core.session import current_controller
from ..core.zones import Zone

MAX_LISTED = 30

ZONE_HINTS = (
    (Zone.GROUND, "Under/around the hex grid"),
    (Zone.BACK_LEFT, "Behind player, left corner"),
    (Zone.BACK_RIGHT, "Behind player, right corner"),
    (Zone.BACK_CENTER, "Directly behind player"),
    (Zone.SIDE_LEFT, "Left side of the field"),
    (Zone.SIDE_RIGHT, "Right side of the field"),
    (Zone.FRONT_LEFT, "Enemy side, left"),
    (Zone.FRONT_RIGHT, "Enemy side, right"),
    (Zone.FRONT_CENTER, "Enemy side, center"),
    (Zone.BENCH_AREA, "Behind the bench slots"),
)


# Main Theme Editor Panel
class FIELDTHEMES_PT_ThemeEditor(bpy.types.Panel):  # noqa: N801
    bl_label = "Theme Editor"
    bl_idname = "FIELDTHEMES_PT_theme_editor"
    bl_space_type = 'VIEW_3D'
    bl_region_type = 'UI'
    bl_category = 'Themes'  # Sidebar tab name

    def draw(self, context: bpy.types.Context) -> None:
        layout = self.layout
        controller = current_controller()

        # Setup
        layout.operator("fieldthemes.setup_editor_scene", text="Setup Editor Scene", icon='SCENE_DATA')

        # Theme identity
        box = layout.box()
        box.label(text="Theme:")
        box.prop(context.scene, "fieldthemes_theme_name", text="Name")
        box.prop(context.scene, "fieldthemes_description", text="Description")

        # New theme flow
        row = layout.row(align=True)
        row.operator("fieldthemes.scan", text="Scan", icon='VIEWZOOM')
        row.operator("fieldthemes.resolve_all", text="Link Templates", icon='LINKED')
        layout.operator("fieldthemes.save_as_new", text="Save as New Theme", icon='FILE_NEW')

        # Edit existing theme
        edit = layout.box()
        edit.label(text="Edit Existing Theme:")
        if controller is not None and controller.loaded is not None:
            edit.label(text=f"Editing: {controller.loaded.name}", icon='CHECKMARK')
            row_e = edit.row(align=True)
            row_e.operator("fieldthemes.update_loaded", text="Update Theme", icon='FILE_REFRESH')
            row_e.operator("fieldthemes.clear_loaded", text="Clear", icon='TRASH')
        else:
            edit.operator("fieldthemes.load_for_editing", text="Load Theme...", icon='FILE_FOLDER')

        # Working list
        if controller is not None and controller.placements:
            lst = layout.box()
            lst.label(text=f"Objects ({len(controller.placements)}) [{controller.state.value}]:")
            col = lst.column(align=True)
            for p in controller.placements[:MAX_LISTED]:
                r = col.row()
                r.label(text=f"{p.status} {p.object_name}")
                r.label(text=p.zone.label)
            hidden = len(controller.placements) - MAX_LISTED
            if hidden > 0:
                lst.label(text=f"... and {hidden} more")
            if controller.state == EditorState.RESOLVED_PARTIAL:
                lst.label(text="○ objects have no template and will be excluded", icon='ERROR')

        # Status text (read-only)
        layout.separator()
        layout.label(text="Status:")
        layout.prop(context.scene, "fieldthemes_status", text="", emboss=False)


class FIELDTHEMES_PT_ZoneGuide(bpy.types.Panel):  # noqa: N801
    bl_label = "Zone Guide"
    bl_idname = "FIELDTHEMES_PT_zone_guide"
    bl_space_type = 'VIEW_3D'
    bl_region_type = 'UI'
    bl_category = 'Themes'
    bl_parent_id = "FIELDTHEMES_PT_theme_editor"
    bl_options = {'DEFAULT_CLOSED'}

    def draw(self, context: bpy.types.Context) -> None:
        col = self.layout.column(align=True)
        for zone, hint in ZONE_HINTS:
            col.label(text=f"{zone.label}: {hint}")
        col.separator()
        col.label(text="✓ linked  ◐ template instance  ○ needs template")


# Registration
def register() -> None:
    # Scene properties for UI state
    bpy.types.Scene.fieldthemes_theme_name = bpy.props.StringProperty(
        name="Theme Name",
        description="Display name of the theme to save",
        default="",
    )
    bpy.types.Scene.fieldthemes_description = bpy.props.StringProperty(
        name="Description",
        description="Short description stored with the theme",
        default="",
    )
    bpy.types.Scene.fieldthemes_status = bpy.props.StringProperty(
        name="Status",
        description="Theme editor status messages",
        default="Ready. Setup the editor scene, place objects, then Scan.",
    )

    bpy.utils.register_class(FIELDTHEMES_PT_ThemeEditor)
    bpy.utils.register_class(FIELDTHEMES_PT_ZoneGuide)


def unregister() -> None:
    bpy.utils.unregister_class(FIELDTHEMES_PT_ZoneGuide)
    bpy.utils.unregister_class(FIELDTHEMES_PT_ThemeEditor)

    # Clean up scene properties
    del bpy.types.Scene.fieldthemes_status
    del bpy.types.Scene.fieldthemes_description
    del bpy.types.Scene.fieldthemes_theme_name
