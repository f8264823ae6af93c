from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class AssessmentComponent:
    name: str
    label: str
    max_marks: int


@dataclass(frozen=True)
class GradeBand:
    letter: str
    threshold: int


CA_COMPONENTS: Tuple[AssessmentComponent, ...] = (
    AssessmentComponent("mid_semester", "Mid Semester", 15),
    AssessmentComponent("assignment", "Assignment", 10),
    AssessmentComponent("quiz", "Quiz", 10),
    AssessmentComponent("attendance", "Attendance", 5),
)

CA_MAX_MARKS: Dict[str, int] = {component.name: component.max_marks for component in CA_COMPONENTS}

EXAM_MAX_MARKS = 60
COURSE_TOTAL_MARKS = 100

GRADE_SCALE: Tuple[GradeBand, ...] = (
    GradeBand("A", 80),
    GradeBand("B", 70),
    GradeBand("C", 60),
    GradeBand("D", 50),
    GradeBand("F", 0),
)

GRADE_THRESHOLDS: Dict[str, int] = {band.letter: band.threshold for band in GRADE_SCALE}

# F is the floor grade and never offered as a target.
TARGET_GRADES: Tuple[str, ...] = tuple(band.letter for band in GRADE_SCALE if band.threshold > 0)
DEFAULT_TARGET_GRADE = "A"

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 3


def _check_grade_scale(scale: Tuple[GradeBand, ...]) -> None:
    if not scale:
        raise ValueError("Grade scale must not be empty")
    for higher, lower in zip(scale, scale[1:]):
        if lower.threshold >= higher.threshold:
            raise ValueError(
                f"Grade thresholds must strictly decrease: {higher.letter}={higher.threshold}, "
                f"{lower.letter}={lower.threshold}"
            )
    if scale[-1].threshold != 0:
        raise ValueError("The lowest grade threshold must be 0")


_check_grade_scale(GRADE_SCALE)

if sum(CA_MAX_MARKS.values()) + EXAM_MAX_MARKS != COURSE_TOTAL_MARKS:
    raise ValueError("CA maxima and exam maximum must add up to the course total")


def grade_band(letter: str) -> GradeBand:
    key = letter.strip().upper()
    for band in GRADE_SCALE:
        if band.letter == key:
            return band
    raise ValueError(f"Unsupported letter grade: {letter}")


def total_max_ca() -> int:
    return sum(CA_MAX_MARKS.values())
