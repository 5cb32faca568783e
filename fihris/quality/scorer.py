"""
Outline quality heuristics.

Three independent 0-100 scores computed from outline text with simple
lexical and pattern checks. All functions accept any string.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict


ARABIC_CHAR_PATTERN = re.compile(r'[\u0600-\u06FF]')

# Headings are matched at the start of any line
TOP_LEVEL_HEADING_PATTERN = re.compile(r'^\d+\.\s', re.MULTILINE)
SUB_HEADING_PATTERN = re.compile(r'^\d+\.\d+\.?\s', re.MULTILINE)

INTRODUCTION_MARKER = "مقدمة"
CONCLUSION_MARKER = "خاتمة"

# methodology, prior literature, theoretical framework, analysis, results
ACADEMIC_MARKERS = ("منهجية", "دراسات سابقة", "إطار نظري", "تحليل", "نتائج")
ACADEMIC_MARKER_WEIGHT = 20

FULL_STRUCTURE_SCORE = 100
PARTIAL_STRUCTURE_SCORE = 75


@dataclass(frozen=True)
class QualityScores:
    """Scores for one version of an outline."""

    language_purity: int = 0
    structural_conformance: int = PARTIAL_STRUCTURE_SCORE
    academic_completeness: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            'language_purity': self.language_purity,
            'structural_conformance': self.structural_conformance,
            'academic_completeness': self.academic_completeness,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def language_purity(text: str) -> int:
    """
    Ratio of Arabic characters to whitespace-delimited tokens, as a percentage.

    Args:
        text: Outline text

    Returns:
        Score in [0, 100]; 0 for empty text
    """
    tokens = len(text.split())
    if tokens == 0:
        return 0

    arabic_chars = len(ARABIC_CHAR_PATTERN.findall(text))
    return min(100, _round_half_up(100 * arabic_chars / tokens))


def structural_conformance(text: str) -> int:
    """
    Check numbered headings and introduction/conclusion markers.

    Returns:
        100 when a top-level heading, a sub-heading and both markers are
        present, 75 otherwise
    """
    has_main_sections = TOP_LEVEL_HEADING_PATTERN.search(text) is not None
    has_sub_sections = SUB_HEADING_PATTERN.search(text) is not None
    has_markers = INTRODUCTION_MARKER in text and CONCLUSION_MARKER in text

    if has_main_sections and has_sub_sections and has_markers:
        return FULL_STRUCTURE_SCORE
    return PARTIAL_STRUCTURE_SCORE


def academic_completeness(text: str) -> int:
    """
    Award points for each academic vocabulary marker found in the text.

    Matching is plain substring search, so longer words containing a
    marker also count.
    """
    score = sum(ACADEMIC_MARKER_WEIGHT for marker in ACADEMIC_MARKERS if marker in text)
    return min(100, score)


def score_outline(text: str) -> QualityScores:
    """Run every heuristic over the full text."""
    return QualityScores(
        language_purity=language_purity(text),
        structural_conformance=structural_conformance(text),
        academic_completeness=academic_completeness(text),
    )


def quality_band(score: int) -> str:
    """Classify a score as good (>= 80), fair (>= 60) or poor."""
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    return "poor"
