# Field Themes record validator
# Validates persisted theme record JSON before it is turned into a ThemeRecord.
#
# Contract highlights:
# - Top-level object with id, name, description, skip flags and an entries array.
# - Each entry: zone (known zone value), template (non-empty string), and three
#   numeric vec3 fields: position_offset, rotation (Euler degrees), scale.
# - Strict schema with actionable, path-scoped errors.
# - Template resolution against the library is checked separately by the store
#   (validate_template_refs) because it needs the live template library.
#
# Public API:
# - validate_theme_record(data: dict) -> tuple[bool, list[ValidationIssue]]
# - validate_template_refs(data: dict, exists) -> list[ValidationIssue]
# - format_issues(issues) -> str  (one "- path: message (code)" line per issue)

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..core.zones import Zone

SLUG_PATTERN = re.compile(r"^[^A-Z\s]*$")
ZONE_VALUES = {z.value for z in Zone}
VEC3_FIELDS = ("position_offset", "rotation", "scale")


@dataclass
class ValidationIssue:
    path: str
    message: str
    code: str = "invalid"

    def __str__(self) -> str:
        return f"{self.path}: {self.message} ({self.code})"


def _is_vec3(value: Any) -> bool:
    if not isinstance(value, list) or len(value) != 3:
        return False
    return all(isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x) for x in value)


def _require(cond: bool, issues: list[ValidationIssue], path: str, msg: str, code: str = "invalid") -> None:
    if not cond:
        issues.append(ValidationIssue(path=path, message=msg, code=code))


def _type_of(value: Any) -> str:
    return type(value).__name__


class ThemeRecordValidator:
    """Schema validator for persisted theme records."""

    def validate(self, data: Any) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []

        _require(isinstance(data, dict), issues, "$", f"Record must be an object, got: {_type_of(data)}", "type")
        if not isinstance(data, dict):
            return issues

        for k in ("id", "name", "entries"):
            _require(k in data, issues, "$", f"Missing required field: {k}", "required")

        rid = data.get("id")
        if rid is not None:
            _require(isinstance(rid, str) and bool(rid), issues, "$.id", "id must be a non-empty string", "type")
            if isinstance(rid, str):
                _require(bool(SLUG_PATTERN.match(rid)), issues, "$.id", "id must be lowercase without spaces", "format")

        name = data.get("name")
        if name is not None:
            _require(isinstance(name, str) and bool(name.strip()), issues, "$.name", "name must be a non-empty string", "type")

        desc = data.get("description", "")
        _require(isinstance(desc, str), issues, "$.description", f"description must be string, got: {_type_of(desc)}", "type")

        for flag in ("skip_ground_layer", "skip_bench_layer"):
            if flag in data:
                _require(isinstance(data[flag], bool), issues, f"$.{flag}", f"{flag} must be boolean", "type")

        if "entries" in data:
            self._validate_entries(data["entries"], issues)

        return issues

    def _validate_entries(self, entries: Any, issues: list[ValidationIssue]) -> None:
        _require(isinstance(entries, list), issues, "$.entries", f"entries must be an array, got: {_type_of(entries)}", "type")
        if not isinstance(entries, list):
            return
        for i, e in enumerate(entries):
            p = f"$.entries[{i}]"
            if not isinstance(e, dict):
                issues.append(ValidationIssue(p, f"entry must be an object, got: {_type_of(e)}", "type"))
                continue
            zone = e.get("zone")
            _require(isinstance(zone, str) and zone in ZONE_VALUES, issues, f"{p}.zone",
                     f"zone must be one of {sorted(ZONE_VALUES)}", "enum")
            tpl = e.get("template")
            _require(isinstance(tpl, str) and bool(tpl.strip()), issues, f"{p}.template",
                     "template must be a non-empty string", "required")
            for fld in VEC3_FIELDS:
                _require(_is_vec3(e.get(fld)), issues, f"{p}.{fld}", f"{fld} must be [x,y,z] numbers", "vec3")


def validate_template_refs(data: dict[str, Any], exists: Callable[[str], bool]) -> list[ValidationIssue]:
    """Check every entry's template against the template library."""
    issues: list[ValidationIssue] = []
    entries: Iterable[Any] = data.get("entries", []) or []
    for i, e in enumerate(entries):
        tpl = e.get("template") if isinstance(e, dict) else None
        if isinstance(tpl, str) and tpl and not exists(tpl):
            issues.append(ValidationIssue(f"$.entries[{i}].template", f"template '{tpl}' does not resolve", "dangling"))
    return issues


# -----------------
# Public API
# -----------------
def validate_theme_record(data: Any) -> tuple[bool, list[ValidationIssue]]:
    issues = ThemeRecordValidator().validate(data)
    return (len(issues) == 0, issues)


def format_issues(issues: Iterable[ValidationIssue]) -> str:
    return "\n".join(f"- {str(i)}" for i in issues)


__all__ = [
    "ValidationIssue",
    "ThemeRecordValidator",
    "validate_theme_record",
    "validate_template_refs",
    "format_issues",
]
