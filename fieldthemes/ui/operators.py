# Field Themes UI operators

import logging
import os

import bpy
from bpy_extras.io_utils import ExportHelper, ImportHelper

from ..core.errors import EmptyInput, ThemeEditorError, WriteConflict
from ..core.session import get_controller
from ..utils.blender_helpers import set_status

logger = logging.getLogger(__name__)


def _fail(op, context, ex: Exception) -> set[str]:
    """Report a failed operation. Empty input is a warning, everything else an error."""
    level = 'WARNING' if isinstance(ex, (EmptyInput, WriteConflict)) else 'ERROR'
    set_status(context, f"Error: {ex}")
    op.report({level}, str(ex))
    return {'CANCELLED'}


class FIELDTHEMES_OT_SetupEditorScene(bpy.types.Operator):  # noqa: N801
    bl_idname = "fieldthemes.setup_editor_scene"
    bl_label = "Setup Theme Editor Scene"
    bl_description = "Create the authoring collection and zone markers around the field"

    def execute(self, context: object) -> set[str]:
        try:
            root = get_controller().setup_editor_scene()
        except ThemeEditorError as e:
            return _fail(self, context, e)
        except Exception as e:
            logger.exception("Editor scene setup failed")
            return _fail(self, context, e)
        set_status(context, f"Place objects in '{root}' around the zone markers.")
        self.report({'INFO'}, f"Theme editor scene ready ('{root}').")
        return {'FINISHED'}


class FIELDTHEMES_OT_Scan(bpy.types.Operator):  # noqa: N801
    bl_idname = "fieldthemes.scan"
    bl_label = "Scan Scene"
    bl_description = "Find theme objects in the authoring collection and assign zones"

    def execute(self, context: object) -> set[str]:
        try:
            report = get_controller().scan()
        except ThemeEditorError as e:
            return _fail(self, context, e)
        set_status(context, report.summary())
        self.report({'INFO'} if report.found else {'WARNING'}, report.summary())
        return {'FINISHED'}


class FIELDTHEMES_OT_ResolveAll(bpy.types.Operator):  # noqa: N801
    bl_idname = "fieldthemes.resolve_all"
    bl_label = "Link Templates"
    bl_description = "Link every scanned object to the template it was placed from"

    def execute(self, context: object) -> set[str]:
        try:
            summary = get_controller().resolve_all()
        except ThemeEditorError as e:
            return _fail(self, context, e)
        msg = f"Linked {summary.resolved} object(s) to templates."
        if summary.unresolved:
            msg += f" {summary.unresolved} object(s) have no template; save with 'Create Templates' to add them."
        set_status(context, msg)
        self.report({'INFO'}, msg)
        return {'FINISHED'}


class FIELDTHEMES_OT_SaveAsNew(bpy.types.Operator, ExportHelper):  # noqa: N801
    bl_idname = "fieldthemes.save_as_new"
    bl_label = "Save Theme"
    bl_description = "Save the scanned objects as a brand-new theme record"

    filename_ext = ".json"
    filter_glob: bpy.props.StringProperty(default="*.json", options={'HIDDEN'})
    check_existing: bpy.props.BoolProperty(default=True, options={'HIDDEN'})

    create_templates: bpy.props.BoolProperty(
        name="Create Templates",
        description="Create templates for objects that are not linked to one yet; otherwise they are excluded",
        default=True,
    )
    overwrite: bpy.props.BoolProperty(
        name="Overwrite Existing",
        description="Replace the theme file if it already exists",
        default=False,
    )

    def invoke(self, context, event):
        name = (getattr(context.scene, "fieldthemes_theme_name", "") or "").strip()
        if not name:
            self.report({'WARNING'}, "Please enter a theme name")
            return {'CANCELLED'}
        controller = get_controller()
        default = controller.store.default_path(controller.store.create(name))
        if default:
            os.makedirs(os.path.dirname(default), exist_ok=True)
            self.filepath = default
        return super().invoke(context, event)

    def execute(self, context: object) -> set[str]:
        name = (getattr(context.scene, "fieldthemes_theme_name", "") or "").strip()
        description = (getattr(context.scene, "fieldthemes_description", "") or "").strip()
        kwargs = {"description": description} if description else {}
        try:
            report = get_controller().save_as_new(
                name,
                self.filepath or None,
                materialize_unresolved=self.create_templates,
                overwrite=self.overwrite,
                **kwargs,
            )
        except ThemeEditorError as e:
            return _fail(self, context, e)
        except Exception as e:
            logger.exception("Theme save failed")
            return _fail(self, context, e)
        set_status(context, report.summary())
        self.report({'INFO'}, report.summary())
        return {'FINISHED'}


class FIELDTHEMES_OT_UpdateLoaded(bpy.types.Operator):  # noqa: N801
    bl_idname = "fieldthemes.update_loaded"
    bl_label = "Update Theme"
    bl_description = "Write current positions of the loaded theme objects back to its file"

    def invoke(self, context, event):
        return context.window_manager.invoke_confirm(self, event)

    def execute(self, context: object) -> set[str]:
        try:
            report = get_controller().update_loaded()
        except ThemeEditorError as e:
            return _fail(self, context, e)
        set_status(context, report.summary())
        self.report({'WARNING'} if report.skipped_null_reference else {'INFO'}, report.summary())
        return {'FINISHED'}


class FIELDTHEMES_OT_LoadForEditing(bpy.types.Operator, ImportHelper):  # noqa: N801
    bl_idname = "fieldthemes.load_for_editing"
    bl_label = "Load Theme"
    bl_description = "Place a saved theme in the scene for editing"

    filename_ext = ".json"
    filter_glob: bpy.props.StringProperty(default="*.json", options={'HIDDEN'})

    def execute(self, context: object) -> set[str]:
        try:
            controller = get_controller()
            report = controller.load_for_editing(self.filepath)
        except ThemeEditorError as e:
            return _fail(self, context, e)
        try:
            context.scene.fieldthemes_theme_name = controller.loaded.name
            context.scene.fieldthemes_description = controller.loaded.description
        except Exception as ex:
            logger.debug(f"Theme name sync failed: {ex}")
        set_status(context, report.summary())
        self.report({'INFO'}, report.summary())
        return {'FINISHED'}


class FIELDTHEMES_OT_ClearLoaded(bpy.types.Operator):  # noqa: N801
    bl_idname = "fieldthemes.clear_loaded"
    bl_label = "Clear Loaded Theme"
    bl_description = "Remove objects placed for editing and stop tracking the loaded theme"

    def execute(self, context: object) -> set[str]:
        try:
            removed = get_controller().clear_loaded()
        except ThemeEditorError as e:
            return _fail(self, context, e)
        set_status(context, f"Cleared {removed} loaded object(s).")
        self.report({'INFO'}, f"Cleared {removed} loaded object(s).")
        return {'FINISHED'}


_CLASSES = (
    FIELDTHEMES_OT_SetupEditorScene,
    FIELDTHEMES_OT_Scan,
    FIELDTHEMES_OT_ResolveAll,
    FIELDTHEMES_OT_SaveAsNew,
    FIELDTHEMES_OT_UpdateLoaded,
    FIELDTHEMES_OT_LoadForEditing,
    FIELDTHEMES_OT_ClearLoaded,
)


def register() -> None:
    for cls in _CLASSES:
        bpy.utils.register_class(cls)


def unregister() -> None:
    for cls in reversed(_CLASSES):
        bpy.utils.unregister_class(cls)
