"""Required-exam-score projections over a course's continuous assessment.

Every function here is pure: inputs are the raw CA mapping (component name to
an optional score) and the fixed assessment schema in
:mod:`gradetrackr.core.assessment`. Nothing is stored; projections are
recomputed whenever the scores change.
"""

from dataclasses import dataclass
from enum import Enum
import math
from typing import Dict, Iterable, List, Mapping, Optional, Union

from gradetrackr.core.assessment import (
    CA_MAX_MARKS,
    EXAM_MAX_MARKS,
    GRADE_THRESHOLDS,
    TARGET_GRADES,
    GradeBand,
    grade_band,
)

Score = Union[int, float]


class ExamOutlook(str, Enum):
    SECURED = "secured"
    ACHIEVABLE = "achievable"
    IMPOSSIBLE = "impossible"


@dataclass(frozen=True)
class GradeProjection:
    grade: str
    threshold: int
    required_score: Score
    achievable: bool
    outlook: ExamOutlook


def _normalize(value: float) -> Score:
    if value.is_integer():
        return int(value)
    return value


def total_ca(scores: Mapping[str, Optional[Score]]) -> Score:
    """Sum of every recorded CA score; unset components count as 0."""
    return sum(score for score in scores.values() if score is not None)


def required_exam_score(total: Score, grade: Union[GradeBand, str]) -> Score:
    """
    Exam marks needed to reach ``grade`` exactly. Not clamped: a negative
    result means the grade is already secured, a result above the exam
    maximum means it is out of reach.
    """
    band = grade if isinstance(grade, GradeBand) else grade_band(grade)
    return band.threshold - total


def is_achievable(required_score: Score, exam_max: Score = EXAM_MAX_MARKS) -> bool:
    return 0 <= required_score <= exam_max


def exam_outlook(required_score: Score, exam_max: Score = EXAM_MAX_MARKS) -> ExamOutlook:
    if required_score < 0:
        return ExamOutlook.SECURED
    if required_score <= exam_max:
        return ExamOutlook.ACHIEVABLE
    return ExamOutlook.IMPOSSIBLE


def parse_score(raw: Union[str, Score, None]) -> Optional[Score]:
    """Parse without clamping; None for empty or non-numeric input."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw

    if isinstance(raw, float):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None

    if math.isnan(value):
        return None
    return value


def validate_component_score(raw: Union[str, Score, None], component_max: Score) -> Optional[Score]:
    """
    Parse a user-entered score. Empty or non-numeric input means "not
    recorded" and yields None; anything numeric is silently clamped into
    [0, component_max].
    """
    value = parse_score(raw)
    if value is None:
        return None

    # ints are compared before any float conversion; huge ints overflow float()
    clamped = max(0, min(value, component_max))
    return _normalize(float(clamped))


def validate_ca_scores(raw_scores: Mapping[str, Union[str, Score, None]]) -> Dict[str, Optional[Score]]:
    """Validate a full CA mapping against the schema; missing keys become None."""
    unknown = [name for name in raw_scores if name not in CA_MAX_MARKS]
    if unknown:
        raise ValueError(f"Unknown assessment components: {', '.join(sorted(unknown))}")
    return {
        name: validate_component_score(raw_scores.get(name), max_marks)
        for name, max_marks in CA_MAX_MARKS.items()
    }


def project_grades(
    scores: Mapping[str, Optional[Score]],
    grades: Optional[Iterable[str]] = None,
    *,
    exam_max: Score = EXAM_MAX_MARKS,
) -> List[GradeProjection]:
    total = total_ca(scores)
    projections: List[GradeProjection] = []
    for letter in grades if grades is not None else TARGET_GRADES:
        band = grade_band(letter)
        required = required_exam_score(total, band)
        projections.append(
            GradeProjection(
                grade=band.letter,
                threshold=GRADE_THRESHOLDS[band.letter],
                required_score=required,
                achievable=is_achievable(required, exam_max),
                outlook=exam_outlook(required, exam_max),
            )
        )
    return projections


def ca_percentage(scores: Mapping[str, Optional[Score]]) -> float:
    """Share of marks earned on the completed components only, 0-100."""
    completed = [name for name, score in scores.items() if score is not None and name in CA_MAX_MARKS]
    if not completed:
        return 0.0
    max_for_completed = sum(CA_MAX_MARKS[name] for name in completed)
    if max_for_completed <= 0:
        return 0.0
    earned = sum(scores[name] for name in completed)
    return (earned / max_for_completed) * 100


def progress_band(percentage: float) -> str:
    if percentage >= 80:
        return "green"
    if percentage >= 60:
        return "yellow"
    return "red"
