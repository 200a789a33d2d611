# Field Themes reconciliation controller
#
# Owns one editing session: the working placement list and (optionally) the theme
# record loaded for editing. Two flows:
#
#   scan -> resolve -> [materialize] -> save_as_new     (always a brand-new record)
#   load_for_editing -> (user moves objects) -> update_loaded   (replace entries in place)
#
# Every operation runs to completion synchronously and returns a report with counts.
# Structural failures raise ThemeEditorError subclasses; per-object problems (lost
# references, missing templates, failed materialization) are counted in the report.
#
# States:
#   IDLE -> SCANNED -> RESOLVED_COMPLETE | RESOLVED_PARTIAL -> SAVED
#   IDLE -> LOADED -> EDITING -> UPDATED | SAVED

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Union

from ..scene.host import ObjectHandle, SceneHost, TemplateLibrary, Transform
from ..scene.preview import generate_zone_markers
from ..utils.deferred import defer
from .errors import (
    CorruptRecord,
    EmptyInput,
    InvalidatedReference,
    MaterializationError,
    NoTrackedObjects,
    UnresolvedTemplate,
    WriteConflict,
    WriteError,
)
from .resolver import ResolveSummary, TemplateResolver
from .scanner import AUTHORING_ROOT, LOADED_CONTAINER, SceneScanner, WorkingPlacement
from .theme_store import DEFAULT_DESCRIPTION, ThemeEntry, ThemeRecord, ThemeStore
from .zones import FieldLayout, Zone

logger = logging.getLogger(__name__)

TEMPLATE_FOLDER_ROOT = "themes"


class EditorState(Enum):
    IDLE = "idle"
    SCANNED = "scanned"
    RESOLVED_COMPLETE = "resolved_complete"
    RESOLVED_PARTIAL = "resolved_partial"
    SAVED = "saved"
    LOADED = "loaded"
    EDITING = "editing"
    UPDATED = "updated"


@dataclass
class ScanReport:
    found: int
    editing: Optional[str] = None

    def summary(self) -> str:
        if self.found == 0:
            return ("No objects found under the authoring collection. Add template instances or meshes "
                    "around the zone markers, then scan again.")
        suffix = f" (editing '{self.editing}')" if self.editing else ""
        return f"Scanned {self.found} object(s){suffix}."


@dataclass
class MaterializeReport:
    created: int = 0
    failed: int = 0


@dataclass
class SaveReport:
    theme_name: str
    path: str
    saved: int
    linked: int
    materialized: int
    materialize_failed: int
    excluded: int
    record: Optional[ThemeRecord] = None

    def summary(self) -> str:
        msg = f"Theme '{self.theme_name}' saved with {self.saved} object(s) to {self.path}."
        if self.materialized:
            msg += f" Created {self.materialized} template(s)."
        if self.excluded:
            msg += f" Excluded {self.excluded} object(s) without a template"
            if self.materialize_failed:
                msg += f" ({self.materialize_failed} failed template creation)"
            msg += "."
        return msg


@dataclass
class UpdateReport:
    theme_name: str
    path: str
    updated: int
    skipped_null_reference: int
    skipped_no_template: int
    total_entries: int

    def summary(self) -> str:
        msg = (f"Theme '{self.theme_name}' updated. Updated: {self.updated}, "
               f"skipped (null reference): {self.skipped_null_reference}, "
               f"skipped (no template): {self.skipped_no_template}, "
               f"total saved: {self.total_entries} placements. Saved to: {self.path}")
        if self.skipped_null_reference:
            msg += " Some objects lost their scene reference; reload the theme to track them again."
        return msg


@dataclass
class LoadReport:
    theme_name: str
    path: Optional[str]
    loaded: int

    def summary(self) -> str:
        return f"Loaded {self.loaded} object(s) from theme '{self.theme_name}'."


def template_folder(theme_name: str) -> str:
    return f"{TEMPLATE_FOLDER_ROOT}/{theme_name.replace(' ', '')}"


def entry_from_placement(p: WorkingPlacement) -> ThemeEntry:
    if p.template is None:
        raise UnresolvedTemplate(f"'{p.object_name}' has no template")
    return ThemeEntry(
        zone=Zone.parse(p.zone),
        template=p.template,
        position_offset=tuple(p.position_offset),
        rotation=tuple(p.rotation),
        scale=tuple(p.scale),
    )


class ThemeEditorController:
    def __init__(
        self,
        host: SceneHost,
        library: TemplateLibrary,
        store: ThemeStore,
        layout: Optional[FieldLayout] = None,
        root: str = AUTHORING_ROOT,
    ) -> None:
        self.host = host
        self.library = library
        self.store = store
        self.layout = layout or FieldLayout()
        self.root = root
        self.scanner = SceneScanner(host, self.layout, root)
        self.resolver = TemplateResolver(host, library)

        self.placements: List[WorkingPlacement] = []
        self.loaded: Optional[ThemeRecord] = None
        self.state = EditorState.IDLE

    # -----------------
    # Scan / resolve
    # -----------------
    def scan(self) -> ScanReport:
        """Replace the working list with a fresh scan; unsaved classification edits are discarded."""
        self.placements = self.scanner.scan()
        self.state = EditorState.EDITING if self.loaded is not None else EditorState.SCANNED
        return ScanReport(found=len(self.placements), editing=self.loaded.name if self.loaded else None)

    def resolve_all(self) -> ResolveSummary:
        if not self.placements:
            raise EmptyInput("No objects to resolve. Scan the scene first.")
        summary = self.resolver.resolve_all(self.placements)
        if self.loaded is None:
            self.state = EditorState.RESOLVED_COMPLETE if summary.complete else EditorState.RESOLVED_PARTIAL
        return summary

    def materialize_unresolved(self, theme_name: str) -> MaterializeReport:
        """Create templates for every placement still lacking one. One failure never stops the batch."""
        report = MaterializeReport()
        folder = template_folder(theme_name)
        for p in self.placements:
            if p.template is not None:
                continue
            try:
                self.resolver.materialize(p, folder)
                report.created += 1
            except (MaterializationError, WriteConflict, InvalidatedReference) as ex:
                logger.warning(f"Failed to create template for: {p.object_name} ({ex})")
                report.failed += 1
        return report

    # -----------------
    # Full save
    # -----------------
    def save_as_new(
        self,
        name: str,
        path: Optional[str],
        materialize_unresolved: bool = False,
        overwrite: bool = False,
        description: str = DEFAULT_DESCRIPTION,
    ) -> SaveReport:
        """
        Build a brand-new theme record from the working list and persist it at `path`.
        An existing record is never modified by this path.
        """
        record = self.store.create(name, description=description)
        # Fail fast on cancelled/occupied targets before creating any templates
        self.store.check_target(path, overwrite=overwrite)

        if self.state == EditorState.IDLE:
            self.scan()
        if not self.placements:
            raise EmptyInput(
                "No objects found in the scene to save. Place template instances around the zone "
                "markers, then try again."
            )

        summary = self.resolve_all()
        mat = MaterializeReport()
        if summary.unresolved and materialize_unresolved:
            mat = self.materialize_unresolved(record.name)

        record.skip_ground_layer = True
        record.skip_bench_layer = True
        for p in self.placements:
            try:
                record.entries.append(entry_from_placement(p))
            except UnresolvedTemplate:
                logger.warning(f"Skipping '{p.object_name}' - no template available")

        saved_path = self.store.persist(record, path, overwrite=overwrite)
        self.state = EditorState.SAVED
        report = SaveReport(
            theme_name=record.name,
            path=saved_path,
            saved=len(record.entries),
            linked=summary.resolved,
            materialized=mat.created,
            materialize_failed=mat.failed,
            excluded=len(self.placements) - len(record.entries),
            record=record,
        )
        logger.info(report.summary())
        return report

    # -----------------
    # Update in place
    # -----------------
    def update_loaded(self) -> UpdateReport:
        if self.loaded is None or not self.placements:
            raise NoTrackedObjects()
        if not self.loaded.path:
            raise WriteError(
                f"Loaded theme '{self.loaded.name}' has no file location. Use Save As New to write it first."
            )

        logger.info(f"Updating {len(self.placements)} placements of '{self.loaded.name}'...")
        live: List[WorkingPlacement] = []
        null_refs = 0
        for p in self.placements:
            if not self.host.is_alive(p.handle):
                logger.warning(f"  [{p.object_name}] scene reference is gone - was it deleted?")
                p.handle = None
                null_refs += 1
                continue
            try:
                t = self.host.get_transform(p.handle)
            except InvalidatedReference:
                logger.warning(f"  [{p.object_name}] scene reference lost during update")
                p.handle = None
                null_refs += 1
                continue
            old = p.position_offset
            p.position_offset = self.layout.to_local(t.position)
            p.rotation = tuple(t.rotation)
            p.scale = tuple(t.scale)
            # Update never re-classifies zones; everything is relative to the field center
            p.zone = Zone.GROUND
            logger.debug(f"  [{p.object_name}] position: {old} -> {p.position_offset}")
            live.append(p)

        if not live:
            raise NoTrackedObjects(
                f"All {null_refs} tracked objects have lost their scene references. This usually means "
                f"scripts or the file were reloaded. Reload the theme and try again.",
                null_references=null_refs,
            )

        # A re-scan while editing drops template links; loaded instances resolve directly
        self.resolver.resolve_all(live)
        entries: List[ThemeEntry] = []
        no_template = 0
        for p in live:
            try:
                entries.append(entry_from_placement(p))
            except UnresolvedTemplate:
                logger.warning(f"Skipping '{p.object_name}' - no template available")
                no_template += 1

        if not entries:
            raise NoTrackedObjects(
                f"None of the {len(live)} tracked objects has a template, so there is nothing to update. "
                f"Link or create templates with Save As New, or reload the theme.",
                null_references=null_refs,
            )

        updated = replace(self.loaded, entries=entries)
        saved_path = self.store.persist(updated, self.loaded.path, overwrite=True)
        self.loaded = updated
        self.state = EditorState.UPDATED

        report = UpdateReport(
            theme_name=updated.name,
            path=saved_path,
            updated=len(entries),
            skipped_null_reference=null_refs,
            skipped_no_template=no_template,
            total_entries=len(entries),
        )
        logger.info(report.summary())
        return report

    # -----------------
    # Load / clear
    # -----------------
    def load_for_editing(self, source: Union[str, ThemeRecord]) -> LoadReport:
        """Spawn one template instance per entry and track them directly (no scan needed)."""
        record = self.store.load(source)

        self.clear_loaded()
        container = self.host.ensure_container(LOADED_CONTAINER, parent=self.root)

        spawned: List[ObjectHandle] = []
        placements: List[WorkingPlacement] = []
        for entry in record.entries:
            transform = Transform(self.layout.to_world(entry.position_offset), entry.rotation, entry.scale)
            try:
                handle = self.host.instantiate(entry.template, transform, container)
                name = self.host.describe(handle).name
            except Exception as ex:
                logger.error(f"Could not instantiate '{entry.template}': {ex}")
                for h in spawned:
                    if self.host.is_alive(h):
                        self.host.remove(h)
                raise CorruptRecord(f"Theme '{record.name}': template '{entry.template}' could not be placed: {ex}") from ex
            spawned.append(handle)
            placements.append(WorkingPlacement(
                object_name=name,
                handle=handle,
                zone=entry.zone,
                position_offset=entry.position_offset,
                rotation=entry.rotation,
                scale=entry.scale,
                template=entry.template,
                is_template_instance=True,
            ))

        self.loaded = record
        self.placements = placements
        self.state = EditorState.LOADED
        report = LoadReport(theme_name=record.name, path=record.path, loaded=len(placements))
        logger.info(report.summary())
        return report

    def clear_loaded(self) -> int:
        """Remove objects spawned for editing and forget the loaded record."""
        removed = self.host.clear_container(LOADED_CONTAINER)
        self.placements = []
        self.loaded = None
        self.state = EditorState.IDLE
        if removed:
            logger.info(f"Cleared {removed} loaded theme objects")
        return removed

    # -----------------
    # Editor scene
    # -----------------
    def setup_editor_scene(self) -> str:
        """Create the authoring collection; zone markers are generated after this update cycle."""
        root = self.host.ensure_container(self.root)
        defer(lambda: generate_zone_markers(self.host, self.layout, root), label="zone preview")
        logger.info(f"Theme editor scene ready: place objects in '{root}' around the zone markers")
        return root
