# Field Themes template correspondence resolver
#
# Resolution order for a live object:
#   1. direct     - the object itself was stamped from a known template
#   2. transitive - the host lineage (overrides/nested instances) or an ancestor object
#                   leads back to a known template
#   3. none       - caller decides whether to materialize a new template
#
# Materialization writes a new template from the live object and binds the object to it,
# so the next scan resolves it directly. Names are de-duplicated deterministically
# (Rock, Rock_1, Rock_2, ...) and existing templates are never overwritten.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..scene.host import ObjectHandle, SceneHost, TemplateLibrary, join_ref
from .errors import InvalidatedReference, MaterializationError
from .scanner import WorkingPlacement

logger = logging.getLogger(__name__)

# Guard against cyclic parent chains reported by a misbehaving host
MAX_ANCESTOR_DEPTH = 64


@dataclass(frozen=True)
class Correspondence:
    template: Optional[str] = None
    is_instance: bool = False

    @property
    def resolved(self) -> bool:
        return self.template is not None


NO_CORRESPONDENCE = Correspondence()


@dataclass
class ResolveSummary:
    resolved: int = 0
    unresolved: int = 0

    @property
    def complete(self) -> bool:
        return self.unresolved == 0


class TemplateResolver:
    def __init__(self, host: SceneHost, library: TemplateLibrary) -> None:
        self.host = host
        self.library = library

    def _known(self, ref: Optional[str]) -> Optional[str]:
        if ref and self.library.exists(ref):
            return ref
        if ref:
            logger.debug(f"Correspondence '{ref}' is not in the template library; ignoring")
        return None

    def resolve(self, handle: Optional[ObjectHandle]) -> Correspondence:
        if handle is None or not self.host.is_alive(handle):
            return NO_CORRESPONDENCE
        try:
            # Tier 1: direct
            ref = self._known(self.host.resolve_correspondence(handle))
            if ref:
                return Correspondence(ref, True)

            # Tier 2: transitive (host lineage first, then enclosing hierarchy)
            ref = self._known(self.host.resolve_correspondence(handle, transitive=True))
            if ref:
                return Correspondence(ref, True)
            ancestor = self.host.parent_of(handle)
            depth = 0
            while ancestor is not None and depth < MAX_ANCESTOR_DEPTH:
                ref = self._known(self.host.resolve_correspondence(ancestor)) or self._known(
                    self.host.resolve_correspondence(ancestor, transitive=True)
                )
                if ref:
                    return Correspondence(ref, True)
                ancestor = self.host.parent_of(ancestor)
                depth += 1
        except InvalidatedReference as ex:
            logger.debug(f"resolve: reference lost during lookup: {ex}")
        return NO_CORRESPONDENCE

    def resolve_placement(self, placement: WorkingPlacement) -> Correspondence:
        """Annotate a placement in place. Already-linked placements keep their template."""
        if placement.template is not None:
            return Correspondence(placement.template, placement.is_template_instance)
        corr = self.resolve(placement.handle)
        placement.template = corr.template
        placement.is_template_instance = corr.is_instance
        return corr

    def resolve_all(self, placements: Iterable[WorkingPlacement]) -> ResolveSummary:
        summary = ResolveSummary()
        for p in placements:
            if self.resolve_placement(p).resolved:
                summary.resolved += 1
            else:
                summary.unresolved += 1
        logger.info(f"Resolved templates: {summary.resolved} linked, {summary.unresolved} unresolved")
        return summary

    def unique_ref(self, folder: str, base_name: str) -> str:
        """First unused reference among base, base_1, base_2, ... in folder."""
        ref = join_ref(folder, base_name)
        counter = 1
        while self.library.exists(ref):
            ref = join_ref(folder, f"{base_name}_{counter}")
            counter += 1
        return ref

    def materialize(self, placement: WorkingPlacement, folder: str, base_name: Optional[str] = None) -> str:
        handle = placement.handle
        if handle is None or not self.host.is_alive(handle):
            raise MaterializationError(f"Cannot create template for '{placement.object_name}': object no longer exists")

        name = sanitize_name(base_name or placement.object_name)
        ref = self.unique_ref(folder, name)
        try:
            created = self.library.create_from(self.host, handle, ref)
        except InvalidatedReference as ex:
            raise MaterializationError(f"Cannot create template for '{placement.object_name}': {ex}") from ex

        try:
            self.host.bind_template(handle, created)
        except InvalidatedReference as ex:
            # Template exists on disk; only the link back to the scene object is lost
            logger.warning(f"Created {created} but could not link '{placement.object_name}' to it: {ex}")

        placement.template = created
        placement.is_template_instance = True
        logger.info(f"Created template: {created}")
        return created


def sanitize_name(name: str) -> str:
    """Template file names: keep the object name but drop path separators and Blender's .001 suffixes."""
    cleaned = (name or "").replace("/", "_").replace("\\", "_").strip()
    head, sep, tail = cleaned.rpartition(".")
    if sep and head and len(tail) == 3 and tail.isdigit():
        cleaned = head
    return cleaned or "Template"
