"""
Generated research outline ("index") and its derived quality scores.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from fihris.quality.scorer import QualityScores, score_outline


class DocumentError(Exception):
    """Raised when a stored or received outline does not have the expected shape."""
    pass


@dataclass(frozen=True)
class AcademicRequirements:
    """Academic requirements reported alongside an outline."""

    has_literature_review: bool = False
    has_methodology: bool = False
    has_citations: bool = False

    def to_dict(self) -> Dict[str, bool]:
        """Convert to dictionary."""
        return {
            'has_literature_review': self.has_literature_review,
            'has_methodology': self.has_methodology,
            'has_citations': self.has_citations,
        }


@dataclass(frozen=True)
class IndexDocument:
    """
    An outline with optional page breakdown and academic requirements.

    Quality scores are derived from raw_text on construction. Use
    with_text() to change the text; the copy is scored again.
    """

    raw_text: str
    estimated_pages: Optional[Dict[str, str]] = None
    academic_requirements: Optional[AcademicRequirements] = None
    quality_scores: QualityScores = field(init=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.raw_text, str):
            raise DocumentError(f"Outline text must be a string, got {type(self.raw_text).__name__}")
        object.__setattr__(self, 'quality_scores', score_outline(self.raw_text))

    def with_text(self, raw_text: str) -> 'IndexDocument':
        """Return a copy holding new text and fresh scores."""
        return replace(self, raw_text=raw_text)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the persisted/wire shape.

        Scores are not included; they are recomputed on load.
        """
        data: Dict[str, Any] = {'index': self.raw_text}
        if self.estimated_pages is not None:
            data['estimated_pages'] = dict(self.estimated_pages)
        if self.academic_requirements is not None:
            data['academic_requirements'] = self.academic_requirements.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexDocument':
        """
        Build a document from its persisted/wire shape.

        Raises:
            DocumentError: If required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise DocumentError("Outline record must be an object")
        if not isinstance(data.get('index'), str):
            raise DocumentError("Outline record is missing the 'index' text")

        pages = data.get('estimated_pages')
        if pages is not None:
            if not isinstance(pages, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in pages.items()
            ):
                raise DocumentError("'estimated_pages' must map section labels to strings")
            pages = dict(pages)

        requirements = data.get('academic_requirements')
        if requirements is not None:
            if not isinstance(requirements, dict):
                raise DocumentError("'academic_requirements' must be an object")
            flags = {}
            for name in ('has_literature_review', 'has_methodology', 'has_citations'):
                value = requirements.get(name, False)
                if not isinstance(value, bool):
                    raise DocumentError(f"'academic_requirements.{name}' must be a boolean")
                flags[name] = value
            requirements = AcademicRequirements(**flags)

        return cls(
            raw_text=data['index'],
            estimated_pages=pages,
            academic_requirements=requirements,
        )
