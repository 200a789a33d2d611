# Field Themes scene host abstraction
#
# The core never touches scene objects directly. It holds ObjectHandles (name + session
# token) and asks a SceneHost to look them up, read/write transforms, instantiate
# templates and report template correspondence. A handle can die at any time: the user
# deletes the object, or Blender reloads the file/scripts and every session token
# changes. Callers must check is_alive() (or catch InvalidatedReference) before use.
#
# Implementations:
# - MemorySceneHost / MemoryTemplateLibrary: offline host for tests, CI and dry runs.
# - BlenderSceneHost / BlenderTemplateLibrary (scene.blender_host): bpy-backed host.

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.errors import InvalidatedReference, MaterializationError, WriteConflict
from ..core.zones import Vec3

logger = logging.getLogger(__name__)

ONE: Vec3 = (1.0, 1.0, 1.0)
ZERO: Vec3 = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ObjectHandle:
    """Weak reference to a live scene object: host key plus the session token it had."""
    key: str
    token: int

    def __str__(self) -> str:
        return f"{self.key}#{self.token}"


@dataclass(frozen=True)
class Transform:
    position: Vec3 = ZERO
    rotation: Vec3 = ZERO  # Euler XYZ, degrees
    scale: Vec3 = ONE


@dataclass(frozen=True)
class ObjectInfo:
    """Snapshot of the properties the scanner needs to decide eligibility."""
    name: str
    kind: str                      # Blender object type: MESH, EMPTY, CAMERA, LIGHT, ...
    parent: Optional[ObjectHandle] = None
    own_geometry: bool = False     # renders something itself (mesh, curve, collection instance)
    child_geometry: bool = False   # some descendant renders something
    is_instance: bool = False      # collection instance / linked template instance

    @property
    def has_geometry(self) -> bool:
        return self.own_geometry or self.child_geometry


class SceneHost(ABC):
    """Host capability used by the scanner, resolver and controller."""

    @abstractmethod
    def iter_objects(self, root: str) -> Iterator[ObjectHandle]:
        """All objects under the named root container (recursively), each once, in host order."""

    @abstractmethod
    def is_alive(self, handle: Optional[ObjectHandle]) -> bool:
        ...

    @abstractmethod
    def describe(self, handle: ObjectHandle) -> ObjectInfo:
        ...

    @abstractmethod
    def get_transform(self, handle: ObjectHandle) -> Transform:
        """World transform (position, Euler degrees, world scale)."""

    @abstractmethod
    def set_transform(self, handle: ObjectHandle, transform: Transform) -> None:
        ...

    @abstractmethod
    def instantiate(self, template: str, transform: Transform, container: str) -> ObjectHandle:
        """Stamp a live instance of `template` into `container` at `transform`."""

    @abstractmethod
    def resolve_correspondence(self, handle: ObjectHandle, transitive: bool = False) -> Optional[str]:
        """
        Template reference the object was stamped from, or None.
        With transitive=True the host follows its own lineage (overrides, nested
        instances) back to the original template.
        """

    @abstractmethod
    def bind_template(self, handle: ObjectHandle, ref: str) -> None:
        """Mark the live object as an instance of `ref` so later scans resolve it directly."""

    @abstractmethod
    def parent_of(self, handle: ObjectHandle) -> Optional[ObjectHandle]:
        ...

    @abstractmethod
    def remove(self, handle: ObjectHandle) -> None:
        ...

    @abstractmethod
    def ensure_container(self, name: str, parent: Optional[str] = None) -> str:
        ...

    @abstractmethod
    def clear_container(self, name: str) -> int:
        """Remove every object in the container; returns the number removed."""

    @abstractmethod
    def create_marker(self, name: str, position: Vec3, container: str) -> ObjectHandle:
        """Create a non-rendering locator object (zone marker preview)."""


class TemplateLibrary(ABC):
    """Reusable template assets addressed by 'folder/name' references."""

    @abstractmethod
    def exists(self, ref: str) -> bool:
        ...

    @abstractmethod
    def create_from(self, host: SceneHost, handle: ObjectHandle, ref: str) -> str:
        """Create a template at `ref` from a live object. Raises WriteConflict if occupied."""

    @abstractmethod
    def list(self, folder: str = "") -> List[str]:
        ...


def join_ref(folder: str, name: str) -> str:
    folder = (folder or "").strip("/")
    return f"{folder}/{name}" if folder else name


# -----------------------------
# In-memory host implementation
# -----------------------------
@dataclass
class MemoryObject:
    name: str
    kind: str = "MESH"
    container: str = ""
    parent: Optional[str] = None
    transform: Transform = field(default_factory=Transform)
    template: Optional[str] = None          # direct correspondence
    origin_template: Optional[str] = None   # lineage (e.g. instance of a template variant)
    own_geometry: bool = True
    token: int = 0


class MemorySceneHost(SceneHost):
    """
    Plain-Python scene used outside Blender. Containers are named groups with an
    optional parent container; objects keep insertion order like Blender's lists.
    reload() simulates a script/file reload: every existing handle becomes invalid.
    """

    def __init__(self) -> None:
        self.objects: Dict[str, MemoryObject] = {}
        self.containers: Dict[str, Optional[str]] = {}
        self._tokens = itertools.count(1)

    # ---- scene authoring helpers (tests and dry runs) ----
    def add_object(
        self,
        name: str,
        container: str,
        position: Vec3 = ZERO,
        rotation: Vec3 = ZERO,
        scale: Vec3 = ONE,
        kind: str = "MESH",
        template: Optional[str] = None,
        origin_template: Optional[str] = None,
        parent: Optional[str] = None,
        own_geometry: Optional[bool] = None,
    ) -> ObjectHandle:
        if container not in self.containers:
            self.ensure_container(container)
        unique = self._unique_name(name)
        geometry = own_geometry if own_geometry is not None else kind in {"MESH", "CURVE"} or template is not None
        obj = MemoryObject(
            name=unique,
            kind=kind,
            container=container,
            parent=parent,
            transform=Transform(tuple(position), tuple(rotation), tuple(scale)),
            template=template,
            origin_template=origin_template,
            own_geometry=geometry,
            token=next(self._tokens),
        )
        self.objects[unique] = obj
        return ObjectHandle(unique, obj.token)

    def delete(self, name: str) -> None:
        self.objects.pop(name, None)

    def move(self, name: str, position: Vec3) -> None:
        obj = self.objects[name]
        obj.transform = replace(obj.transform, position=tuple(position))

    def reload(self) -> None:
        for obj in self.objects.values():
            obj.token = next(self._tokens)

    def handle_for(self, name: str) -> ObjectHandle:
        obj = self.objects[name]
        return ObjectHandle(obj.name, obj.token)

    def _unique_name(self, name: str) -> str:
        # Blender-style suffixes: Rock, Rock.001, Rock.002
        if name not in self.objects:
            return name
        for i in itertools.count(1):
            candidate = f"{name}.{i:03d}"
            if candidate not in self.objects:
                return candidate
        raise AssertionError("unreachable")

    def _get(self, handle: Optional[ObjectHandle]) -> MemoryObject:
        if handle is None:
            raise InvalidatedReference("Object reference is empty")
        obj = self.objects.get(handle.key)
        if obj is None or obj.token != handle.token:
            raise InvalidatedReference(f"Object '{handle.key}' no longer exists in the scene")
        return obj

    def _container_tree(self, root: str) -> List[str]:
        names = [root]
        for name in names:
            names.extend(c for c, p in self.containers.items() if p == name and c not in names)
        return names

    # ---- SceneHost ----
    def iter_objects(self, root: str) -> Iterator[ObjectHandle]:
        tree = set(self._container_tree(root))
        for obj in list(self.objects.values()):
            if obj.container in tree:
                yield ObjectHandle(obj.name, obj.token)

    def is_alive(self, handle: Optional[ObjectHandle]) -> bool:
        if handle is None:
            return False
        obj = self.objects.get(handle.key)
        return obj is not None and obj.token == handle.token

    def describe(self, handle: ObjectHandle) -> ObjectInfo:
        obj = self._get(handle)
        parent = self.objects.get(obj.parent) if obj.parent else None
        return ObjectInfo(
            name=obj.name,
            kind=obj.kind,
            parent=ObjectHandle(parent.name, parent.token) if parent else None,
            own_geometry=obj.own_geometry,
            child_geometry=self._child_geometry(obj.name),
            is_instance=obj.template is not None,
        )

    def _child_geometry(self, name: str) -> bool:
        for child in self.objects.values():
            if child.parent == name and (child.own_geometry or self._child_geometry(child.name)):
                return True
        return False

    def get_transform(self, handle: ObjectHandle) -> Transform:
        return self._get(handle).transform

    def set_transform(self, handle: ObjectHandle, transform: Transform) -> None:
        self._get(handle).transform = transform

    def instantiate(self, template: str, transform: Transform, container: str) -> ObjectHandle:
        base = template.rsplit("/", 1)[-1]
        return self.add_object(
            base,
            container,
            position=transform.position,
            rotation=transform.rotation,
            scale=transform.scale,
            kind="EMPTY",
            template=template,
            own_geometry=True,
        )

    def resolve_correspondence(self, handle: ObjectHandle, transitive: bool = False) -> Optional[str]:
        obj = self._get(handle)
        if transitive:
            return obj.origin_template
        return obj.template

    def bind_template(self, handle: ObjectHandle, ref: str) -> None:
        self._get(handle).template = ref

    def parent_of(self, handle: ObjectHandle) -> Optional[ObjectHandle]:
        obj = self._get(handle)
        parent = self.objects.get(obj.parent) if obj.parent else None
        return ObjectHandle(parent.name, parent.token) if parent else None

    def remove(self, handle: ObjectHandle) -> None:
        obj = self._get(handle)
        for child in [c for c in self.objects.values() if c.parent == obj.name]:
            self.remove(ObjectHandle(child.name, child.token))
        self.objects.pop(obj.name, None)

    def ensure_container(self, name: str, parent: Optional[str] = None) -> str:
        if name not in self.containers:
            self.containers[name] = parent
        return name

    def clear_container(self, name: str) -> int:
        doomed = [o.name for o in self.objects.values() if o.container == name]
        for nm in doomed:
            self.objects.pop(nm, None)
        return len(doomed)

    def create_marker(self, name: str, position: Vec3, container: str) -> ObjectHandle:
        return self.add_object(name, container, position=position, kind="EMPTY", own_geometry=False)


class MemoryTemplateLibrary(TemplateLibrary):
    """Template store keeping a transform-free snapshot of each source object."""

    def __init__(self, refs: Iterable[str] = ()) -> None:
        self.templates: Dict[str, Tuple[str, str]] = {}
        for ref in refs:
            self.templates[ref] = (ref.rsplit("/", 1)[-1], "MESH")

    def exists(self, ref: str) -> bool:
        return ref in self.templates

    def create_from(self, host: SceneHost, handle: ObjectHandle, ref: str) -> str:
        if self.exists(ref):
            raise WriteConflict(ref)
        if not host.is_alive(handle):
            raise MaterializationError(f"Cannot create template '{ref}': source object is gone")
        info = host.describe(handle)
        self.templates[ref] = (info.name, info.kind)
        logger.debug(f"Memory template created: {ref} (from {info.name})")
        return ref

    def list(self, folder: str = "") -> List[str]:
        prefix = (folder or "").strip("/")
        if not prefix:
            return sorted(self.templates)
        return sorted(r for r in self.templates if r.startswith(prefix + "/"))
