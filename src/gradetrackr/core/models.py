from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from gradetrackr.core.assessment import (
    CA_MAX_MARKS,
    DEFAULT_DIFFICULTY,
    DEFAULT_TARGET_GRADE,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
)
from gradetrackr.core.calculator import Score, total_ca, validate_component_score


# Firestore documents keep the camel-case keys the web client has always written.
_DOCUMENT_CA_KEYS: Dict[str, str] = {
    "mid_semester": "midSemester",
    "assignment": "assignment",
    "quiz": "quiz",
    "attendance": "attendance",
}


def _coerce_difficulty(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_DIFFICULTY
    try:
        level = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_DIFFICULTY
    return max(MIN_DIFFICULTY, min(level, MAX_DIFFICULTY))


def empty_ca() -> Dict[str, Optional[Score]]:
    return {name: None for name in CA_MAX_MARKS}


@dataclass
class Course:
    id: str
    name: str
    code: str
    ca: Dict[str, Optional[Score]] = field(default_factory=empty_ca)
    target_grade: str = DEFAULT_TARGET_GRADE
    difficulty: int = DEFAULT_DIFFICULTY

    @property
    def total_ca(self) -> Score:
        return total_ca(self.ca)

    @classmethod
    def from_document(cls, course_id: str, data: Dict[str, Any]) -> "Course":
        raw_ca = data.get("ca")
        if not isinstance(raw_ca, dict):
            raw_ca = {}
        ca = empty_ca()
        for name, doc_key in _DOCUMENT_CA_KEYS.items():
            ca[name] = validate_component_score(raw_ca.get(doc_key), CA_MAX_MARKS[name])
        return cls(
            id=course_id,
            name=str(data.get("name", "")),
            code=str(data.get("code", "")),
            ca=ca,
            target_grade=str(data.get("targetGrade") or DEFAULT_TARGET_GRADE),
            difficulty=_coerce_difficulty(data.get("difficulty")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "ca": ca_to_document(self.ca),
            "targetGrade": self.target_grade,
            "difficulty": self.difficulty,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "ca": dict(self.ca),
            "target_grade": self.target_grade,
            "difficulty": self.difficulty,
            "total_ca": self.total_ca,
        }


def ca_to_document(ca: Dict[str, Optional[Score]]) -> Dict[str, Optional[Score]]:
    return {_DOCUMENT_CA_KEYS[name]: ca.get(name) for name in CA_MAX_MARKS}
