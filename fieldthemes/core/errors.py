# Field Themes error taxonomy
#
# Structural failures (cancelled path, unwritable location, corrupt record, nothing to
# save) abort the operation. Unresolved templates and invalidated references are
# recoverable and normally show up as counts in an operation report instead.

from __future__ import annotations


class ThemeEditorError(Exception):
    """Base class for theme authoring failures surfaced to the user."""
    pass


class EmptyInput(ThemeEditorError):
    """No scan results, no theme name, or nothing else to work on."""
    pass


class NoTrackedObjects(EmptyInput):
    """Update requested but no loaded theme or no live tracked objects remain."""

    def __init__(self, message: str | None = None, null_references: int = 0) -> None:
        self.null_references = null_references
        super().__init__(message or (
            "No objects are being tracked. This happens after scripts or the file were "
            "reloaded since the theme was loaded. Reload the theme, make changes, then update."
        ))


class UnresolvedTemplate(ThemeEditorError):
    """A live object has no backing template."""
    pass


class InvalidatedReference(ThemeEditorError):
    """A live object handle no longer resolves (deleted, or the host reloaded)."""
    pass


class MaterializationError(ThemeEditorError):
    """A template could not be created from a live object."""
    pass


class WriteConflict(ThemeEditorError):
    """Target path already exists and overwriting was not confirmed."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"Target already exists: {path}")


class WriteError(ThemeEditorError):
    """Location unwritable or selection cancelled; nothing was written."""
    pass


class NotFound(ThemeEditorError):
    """Theme record file does not exist."""
    pass


class CorruptRecord(ThemeEditorError):
    """Persisted record is unreadable or references templates that do not resolve."""

    def __init__(self, message: str, issues: list | None = None) -> None:
        self.issues = list(issues or [])
        super().__init__(message)
