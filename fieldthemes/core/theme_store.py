# Field Themes record store
#
# Theme records are JSON documents written as a unit. Writes go to a temp file in the
# target directory and are swapped in with os.replace(), so a failed or cancelled save
# never leaves a partial record behind.
#
# Public API:
# - ThemeStore.create(name) -> ThemeRecord          (not persisted)
# - ThemeStore.persist(record, path, overwrite=False) -> str
# - ThemeStore.load(path_or_record) -> ThemeRecord  (NotFound / CorruptRecord)

from __future__ import annotations

import glob
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..scene.host import ONE, ZERO, TemplateLibrary
from ..utils.record_validation import format_issues, validate_template_refs, validate_theme_record
from .errors import CorruptRecord, EmptyInput, NotFound, WriteConflict, WriteError
from .zones import Vec3, Zone

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Custom theme created in Theme Editor"
RECORD_EXT = ".json"


def slugify(name: str) -> str:
    return (name or "").strip().lower().replace(" ", "_")


def _vec3(value: Any) -> Vec3:
    x, y, z = (float(v) for v in value)
    return (x, y, z)


@dataclass
class ThemeEntry:
    zone: Zone
    template: str
    position_offset: Vec3 = ZERO
    rotation: Vec3 = ZERO
    scale: Vec3 = ONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone": self.zone.value,
            "template": self.template,
            "position_offset": list(self.position_offset),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThemeEntry":
        return cls(
            zone=Zone.parse(data.get("zone")),
            template=str(data["template"]),
            position_offset=_vec3(data.get("position_offset", ZERO)),
            rotation=_vec3(data.get("rotation", ZERO)),
            scale=_vec3(data.get("scale", ONE)),
        )


@dataclass
class ThemeRecord:
    id: str
    name: str
    description: str = DEFAULT_DESCRIPTION
    skip_ground_layer: bool = False
    skip_bench_layer: bool = False
    entries: List[ThemeEntry] = field(default_factory=list)
    # Where the record was last persisted or loaded from; not serialized
    path: Optional[str] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "skip_ground_layer": self.skip_ground_layer,
            "skip_bench_layer": self.skip_bench_layer,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThemeRecord":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "") or ""),
            skip_ground_layer=bool(data.get("skip_ground_layer", False)),
            skip_bench_layer=bool(data.get("skip_bench_layer", False)),
            entries=[ThemeEntry.from_dict(e) for e in data.get("entries", [])],
        )

    def entries_for_zone(self, zone: Zone) -> List[ThemeEntry]:
        return [e for e in self.entries if e.zone == zone]


class ThemeStore:
    """Owns persisted theme records. Template references are checked against `library` on load."""

    def __init__(self, library: TemplateLibrary, themes_dir: Optional[str] = None) -> None:
        self.library = library
        self.themes_dir = themes_dir

    def create(self, name: str, description: str = DEFAULT_DESCRIPTION) -> ThemeRecord:
        if not isinstance(name, str) or not name.strip():
            raise EmptyInput("Please enter a theme name")
        name = name.strip()
        return ThemeRecord(id=slugify(name), name=name, description=description)

    def default_path(self, record: ThemeRecord) -> Optional[str]:
        if not self.themes_dir:
            return None
        filename = record.name.replace(" ", "") + "Theme" + RECORD_EXT
        return os.path.join(self.themes_dir, filename)

    def list_records(self) -> List[str]:
        if not self.themes_dir or not os.path.isdir(self.themes_dir):
            return []
        return sorted(glob.glob(os.path.join(self.themes_dir, "*" + RECORD_EXT)))

    def check_target(self, path: Optional[str], overwrite: bool = False) -> str:
        """Validate a save location without writing. Returns the absolute path."""
        if not path:
            raise WriteError("Save cancelled: no location selected")
        path = os.path.abspath(path)
        if os.path.isdir(path):
            raise WriteError(f"Cannot save theme: {path} is a directory")
        if os.path.exists(path) and not overwrite:
            raise WriteConflict(path, f"Theme file already exists: {path}. Confirm overwrite to replace it.")
        return path

    def persist(self, record: ThemeRecord, path: Optional[str], overwrite: bool = False) -> str:
        """
        Write the whole record to `path`. A None path means the user cancelled location
        selection. Raises WriteConflict if the file exists and overwrite is False, and
        WriteError if the location cannot be written. Nothing is written on failure.
        """
        path = self.check_target(path, overwrite=overwrite)
        missing = [i for i, e in enumerate(record.entries) if not e.template]
        if missing:
            raise WriteError(f"Refusing to save '{record.name}': entries {missing} have no template")

        payload = json.dumps(record.to_dict(), indent=2)
        directory = os.path.dirname(path)
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".theme-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as ex:
            raise WriteError(f"Could not write theme to {path}: {ex}") from ex
        finally:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as ex:
                    logger.debug(f"persist: temp cleanup failed for {tmp_path}: {ex}")

        record.path = path
        logger.info(f"Saved theme '{record.name}' with {len(record.entries)} placements to: {path}")
        return path

    def load(self, source: Union[str, ThemeRecord]) -> ThemeRecord:
        """
        Load a record from a path (or re-validate an in-memory record). Fails entirely with
        NotFound or CorruptRecord; a partially valid record is never returned.
        """
        if isinstance(source, ThemeRecord):
            data = source.to_dict()
            origin = source.path or f"<record {source.id}>"
        else:
            if not source or not os.path.isfile(source):
                raise NotFound(f"Theme record not found: {source}")
            origin = os.path.abspath(source)
            try:
                with open(origin, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as ex:
                raise CorruptRecord(f"Theme record {origin} is unreadable: {ex}") from ex

        ok, issues = validate_theme_record(data)
        if not ok:
            raise CorruptRecord(f"Theme record {origin} is invalid:\n{format_issues(issues)}", issues)

        dangling = validate_template_refs(data, self.library.exists)
        if dangling:
            raise CorruptRecord(
                f"Theme record {origin} references missing templates:\n{format_issues(dangling)}", dangling
            )

        record = ThemeRecord.from_dict(data)
        record.path = source.path if isinstance(source, ThemeRecord) else origin
        logger.info(f"Loaded theme '{record.name}' ({len(record.entries)} placements) from {origin}")
        return record
