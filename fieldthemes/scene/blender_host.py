# Field Themes Blender host
#
# Maps the host abstraction onto bpy:
# - Containers are collections; the authoring root and the loaded-theme container are
#   collections linked under the scene collection.
# - Templates are .blend library files under the templates directory, one collection
#   per file named after the template ("themes/Meadow/Rock" -> themes/Meadow/Rock.blend,
#   collection "Rock").
# - A live template instance is a collection-instance empty whose instance_collection is
#   linked from a template file (direct correspondence), or an object/collection whose
#   library override points back at a template file (transitive correspondence).
# - An object a template was created from carries the template reference in the
#   "fieldthemes_template" custom property and resolves directly from then on.
# - Handles carry the object name and its session_uid; after a file reload or undo the
#   uid changes and the handle is dead.
#
# Notes:
# - Guard all bpy usage so the module imports in test/CI environments without Blender.

from __future__ import annotations

import logging
import math
import os
from typing import Iterator, List, Optional

from ..core.errors import InvalidatedReference, MaterializationError, WriteConflict
from ..core.zones import Vec3
from ..utils.cleanup import cleanup_new_datablocks, snapshot_datablocks
from .host import ObjectHandle, ObjectInfo, SceneHost, TemplateLibrary, Transform

try:
    import bpy  # type: ignore
    import mathutils  # type: ignore
except Exception:
    bpy = None  # Allows offline import
    mathutils = None

logger = logging.getLogger(__name__)

TEMPLATE_EXT = ".blend"
# Custom property linking a scene object to the template created from it
TEMPLATE_PROP = "fieldthemes_template"
GEOMETRY_TYPES = {"MESH", "CURVE", "SURFACE", "META", "FONT", "CURVES", "POINTCLOUD", "VOLUME", "GPENCIL", "GREASEPENCIL"}


def _require_bpy() -> None:
    if bpy is None:
        raise RuntimeError("bpy not available; the Blender scene host requires the Blender runtime.")


def template_path(templates_dir: str, ref: str) -> str:
    parts = [p for p in ref.split("/") if p]
    return os.path.join(templates_dir, *parts) + TEMPLATE_EXT


def ref_from_path(templates_dir: str, filepath: str) -> Optional[str]:
    """Template reference for a library file, or None when it lives outside the templates dir."""
    if not filepath:
        return None
    root = os.path.abspath(templates_dir)
    path = os.path.abspath(filepath)
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # Different drive on Windows
        return None
    if rel.startswith(os.pardir) or not rel.lower().endswith(TEMPLATE_EXT):
        return None
    return rel[: -len(TEMPLATE_EXT)].replace(os.sep, "/")


def session_token(obj) -> int:
    uid = getattr(obj, "session_uid", None)
    if isinstance(uid, int):
        return uid
    return int(obj.as_pointer())


def _is_collection_instance(obj) -> bool:
    return getattr(obj, "instance_type", "NONE") == "COLLECTION" and getattr(obj, "instance_collection", None) is not None


def _renders(obj) -> bool:
    return getattr(obj, "type", "") in GEOMETRY_TYPES or _is_collection_instance(obj)


class BlenderSceneHost(SceneHost):
    def __init__(self, templates_dir: str) -> None:
        self.templates_dir = os.path.abspath(templates_dir)

    # ---- lookups ----
    def lookup(self, handle: Optional[ObjectHandle]):
        _require_bpy()
        if handle is None:
            raise InvalidatedReference("Object reference is empty")
        obj = bpy.data.objects.get(handle.key)
        if obj is None or session_token(obj) != handle.token:
            raise InvalidatedReference(f"Object '{handle.key}' no longer exists in the scene")
        return obj

    def _handle(self, obj) -> ObjectHandle:
        return ObjectHandle(obj.name, session_token(obj))

    def _ref_for(self, id_block) -> Optional[str]:
        lib = getattr(id_block, "library", None) if id_block is not None else None
        if lib is None:
            return None
        return ref_from_path(self.templates_dir, bpy.path.abspath(lib.filepath))

    # ---- SceneHost ----
    def iter_objects(self, root: str) -> Iterator[ObjectHandle]:
        _require_bpy()
        col = bpy.data.collections.get(root)
        if col is None:
            logger.debug(f"Authoring collection '{root}' not found")
            return
        seen = set()
        for obj in col.all_objects:
            if obj.name in seen:
                continue
            seen.add(obj.name)
            yield self._handle(obj)

    def is_alive(self, handle: Optional[ObjectHandle]) -> bool:
        if bpy is None or handle is None:
            return False
        obj = bpy.data.objects.get(handle.key)
        return obj is not None and session_token(obj) == handle.token

    def describe(self, handle: ObjectHandle) -> ObjectInfo:
        obj = self.lookup(handle)
        parent = obj.parent
        return ObjectInfo(
            name=obj.name,
            kind=obj.type,
            parent=self._handle(parent) if parent is not None else None,
            own_geometry=_renders(obj),
            child_geometry=any(_renders(c) for c in obj.children_recursive),
            is_instance=_is_collection_instance(obj) or getattr(obj, "override_library", None) is not None,
        )

    def get_transform(self, handle: ObjectHandle) -> Transform:
        obj = self.lookup(handle)
        loc, quat, scale = obj.matrix_world.decompose()
        euler = quat.to_euler("XYZ")
        return Transform(
            position=(loc.x, loc.y, loc.z),
            rotation=tuple(math.degrees(a) for a in euler),
            scale=(scale.x, scale.y, scale.z),
        )

    def set_transform(self, handle: ObjectHandle, transform: Transform) -> None:
        obj = self.lookup(handle)
        rot = mathutils.Euler([math.radians(a) for a in transform.rotation], "XYZ")
        obj.matrix_world = mathutils.Matrix.LocRotScale(
            mathutils.Vector(transform.position), rot, mathutils.Vector(transform.scale)
        )

    def _link_template(self, ref: str):
        path = template_path(self.templates_dir, ref)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Template file missing: {path}")
        name = ref.rsplit("/", 1)[-1]
        for col in bpy.data.collections:
            if col.name == name and self._ref_for(col) == ref:
                return col
        with bpy.data.libraries.load(path, link=True) as (data_from, data_to):
            if name not in data_from.collections:
                raise RuntimeError(f"Template file {path} has no collection named '{name}'")
            data_to.collections = [name]
        return data_to.collections[0]

    def instantiate(self, template: str, transform: Transform, container: str) -> ObjectHandle:
        _require_bpy()
        col = self._link_template(template)
        target = bpy.data.collections.get(container)
        if target is None:
            raise RuntimeError(f"Container collection '{container}' not found")
        empty = bpy.data.objects.new(col.name, None)
        empty.instance_type = "COLLECTION"
        empty.instance_collection = col
        target.objects.link(empty)
        handle = self._handle(empty)
        self.set_transform(handle, transform)
        return handle

    def resolve_correspondence(self, handle: ObjectHandle, transitive: bool = False) -> Optional[str]:
        obj = self.lookup(handle)
        if not transitive:
            if _is_collection_instance(obj):
                return self._ref_for(obj.instance_collection)
            bound = obj.get(TEMPLATE_PROP)
            if isinstance(bound, str) and bound:
                return bound
            return self._ref_for(obj)
        # Library overrides: the object, or the collection it instances, overrides linked data
        for block in (obj, getattr(obj, "instance_collection", None)):
            override = getattr(block, "override_library", None) if block is not None else None
            reference = getattr(override, "reference", None) if override is not None else None
            ref = self._ref_for(reference)
            if ref:
                return ref
        return None

    def bind_template(self, handle: ObjectHandle, ref: str) -> None:
        obj = self.lookup(handle)
        # Stored as an ID property so it survives file save/reload
        obj[TEMPLATE_PROP] = ref

    def parent_of(self, handle: ObjectHandle) -> Optional[ObjectHandle]:
        obj = self.lookup(handle)
        return self._handle(obj.parent) if obj.parent is not None else None

    def remove(self, handle: ObjectHandle) -> None:
        obj = self.lookup(handle)
        bpy.data.objects.remove(obj, do_unlink=True)

    def ensure_container(self, name: str, parent: Optional[str] = None) -> str:
        _require_bpy()
        col = bpy.data.collections.get(name)
        if col is None:
            col = bpy.data.collections.new(name)
        owner = bpy.data.collections.get(parent) if parent else bpy.context.scene.collection
        if owner is None:
            owner = bpy.context.scene.collection
        if owner.children.get(col.name) is None:
            owner.children.link(col)
        return col.name

    def clear_container(self, name: str) -> int:
        _require_bpy()
        col = bpy.data.collections.get(name)
        if col is None:
            return 0
        doomed = list(col.objects)
        for obj in doomed:
            bpy.data.objects.remove(obj, do_unlink=True)
        return len(doomed)

    def create_marker(self, name: str, position: Vec3, container: str) -> ObjectHandle:
        _require_bpy()
        target = bpy.data.collections.get(container)
        if target is None:
            raise RuntimeError(f"Container collection '{container}' not found")
        marker = bpy.data.objects.new(name, None)
        marker.empty_display_type = "SPHERE"
        marker.empty_display_size = 0.3
        marker.location = position
        marker.hide_select = True
        target.objects.link(marker)
        return self._handle(marker)


class BlenderTemplateLibrary(TemplateLibrary):
    """Templates as .blend files, each holding one collection with the source object hierarchy."""

    def __init__(self, templates_dir: str) -> None:
        self.templates_dir = os.path.abspath(templates_dir)

    def exists(self, ref: str) -> bool:
        return os.path.isfile(template_path(self.templates_dir, ref))

    def list(self, folder: str = "") -> List[str]:
        base = os.path.join(self.templates_dir, *[p for p in folder.split("/") if p])
        refs: List[str] = []
        if not os.path.isdir(base):
            return refs
        for dirpath, _dirnames, filenames in os.walk(base):
            for fn in filenames:
                if fn.lower().endswith(TEMPLATE_EXT):
                    ref = ref_from_path(self.templates_dir, os.path.join(dirpath, fn))
                    if ref:
                        refs.append(ref)
        return sorted(refs)

    def create_from(self, host: SceneHost, handle: ObjectHandle, ref: str) -> str:
        _require_bpy()
        path = template_path(self.templates_dir, ref)
        if os.path.exists(path):
            raise WriteConflict(path)
        if not isinstance(host, BlenderSceneHost):
            raise MaterializationError("Blender templates can only be created from Blender scene objects")
        obj = host.lookup(handle)
        name = ref.rsplit("/", 1)[-1]

        pre = snapshot_datablocks(bpy)
        saved_matrix = obj.matrix_world.copy()
        try:
            col = bpy.data.collections.new(name)
            for o in [obj, *obj.children_recursive]:
                col.objects.link(o)
            # Template content is stored at the origin; instances carry the placement
            obj.matrix_world = mathutils.Matrix.Identity(4)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            bpy.data.libraries.write(path, {col}, fake_user=True, path_remap="ABSOLUTE")
        except Exception as ex:
            obj.matrix_world = saved_matrix
            cleanup_new_datablocks(pre, bpy)
            if os.path.exists(path):
                os.remove(path)
            raise MaterializationError(f"Failed to write template {path}: {ex}") from ex

        obj.matrix_world = saved_matrix
        for o in list(col.objects):
            col.objects.unlink(o)
        bpy.data.collections.remove(col)
        logger.info(f"Created template: {path}")
        return ref
