"""Exception types raised by the label maker core."""

from __future__ import annotations


class LabelMakerError(Exception):
    """Base class for operator-recoverable failures."""


class RecordImportError(LabelMakerError):
    """The import source could not be turned into records."""


class UnsupportedFileError(RecordImportError):
    """The import source has an extension we cannot read."""


class SelectionError(LabelMakerError):
    """A selection request was incomplete or invalid."""


class TemplateError(LabelMakerError):
    """A template could not be loaded, saved or deleted."""


class TemplatePersistenceError(LabelMakerError):
    """The template store failed to read or write."""


class CollaboratorUnavailableError(LabelMakerError):
    """A rendering or export library is not available."""


class ExportInProgressError(LabelMakerError):
    """Another export is already writing the print area."""
