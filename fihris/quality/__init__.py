"""Outline quality scoring."""

from .scorer import (
    QualityScores,
    language_purity,
    structural_conformance,
    academic_completeness,
    score_outline,
    quality_band,
)

__all__ = [
    "QualityScores",
    "language_purity",
    "structural_conformance",
    "academic_completeness",
    "score_outline",
    "quality_band",
]
