"""Outline model and export."""

from .document import IndexDocument, AcademicRequirements, DocumentError
from .export import ExportArtifact, ExportError, export_document

__all__ = [
    "IndexDocument",
    "AcademicRequirements",
    "DocumentError",
    "ExportArtifact",
    "ExportError",
    "export_document",
]
