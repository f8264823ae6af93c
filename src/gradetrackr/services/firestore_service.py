from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

try:
    from google.cloud import firestore
except ModuleNotFoundError as exc:
    raise ModuleNotFoundError(
        "Missing dependency 'google-cloud-firestore'. Install the project with pip install -e ."
    ) from exc

from gradetrackr.config.settings import settings
from gradetrackr.core.assessment import (
    DEFAULT_DIFFICULTY,
    DEFAULT_TARGET_GRADE,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    TARGET_GRADES,
)
from gradetrackr.core.calculator import validate_ca_scores
from gradetrackr.core.models import Course, ca_to_document, empty_ca


logger = logging.getLogger(__name__)


class FirestoreServiceError(Exception):
    pass


class CourseNotFoundError(FirestoreServiceError):
    pass


def _check_target_grade(target_grade: str) -> str:
    key = target_grade.strip().upper()
    if key not in TARGET_GRADES:
        raise FirestoreServiceError(
            f"Unsupported target grade: {target_grade}. Use one of {', '.join(TARGET_GRADES)}."
        )
    return key


def _check_difficulty(difficulty: int) -> int:
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise FirestoreServiceError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}."
        )
    return difficulty


class FirestoreService:
    def __init__(self, project_id: str, client: Optional[Any] = None) -> None:
        if client is None and not project_id:
            raise FirestoreServiceError("Missing FIREBASE_PROJECT_ID in environment")
        self.db = client if client is not None else firestore.Client(project=project_id)

    @classmethod
    def from_settings(cls) -> "FirestoreService":
        return cls(settings.firebase_project_id)

    def _courses_ref(self, uid: str):
        if not uid:
            raise FirestoreServiceError("A user id is required.")
        return self.db.collection("users").document(uid).collection("courses")

    def ensure_user_profile(self, uid: str, email: str) -> None:
        ref = self.db.collection("users").document(uid)
        if not ref.get().exists:
            logger.info("Creating profile for user %s", uid)
            ref.set(
                {
                    "email": email,
                    "created_at": datetime.now(timezone.utc),
                }
            )

    def list_courses(self, uid: str) -> List[Course]:
        docs = self._courses_ref(uid).order_by("name").stream()
        return [Course.from_document(doc.id, doc.to_dict() or {}) for doc in docs]

    def get_course(self, uid: str, course_id: str) -> Optional[Course]:
        snap = self._courses_ref(uid).document(course_id).get()
        if not snap.exists:
            return None
        return Course.from_document(snap.id, snap.to_dict() or {})

    def create_course(
        self,
        uid: str,
        *,
        name: str,
        code: str,
        difficulty: int = DEFAULT_DIFFICULTY,
    ) -> Course:
        name = name.strip()
        code = code.strip()
        if not name or not code:
            raise FirestoreServiceError("Course name and code are required.")

        course = Course(
            id="",
            name=name,
            code=code,
            ca=empty_ca(),
            target_grade=DEFAULT_TARGET_GRADE,
            difficulty=_check_difficulty(int(difficulty)),
        )
        now = datetime.now(timezone.utc)
        ref = self._courses_ref(uid).document()
        ref.set({**course.to_document(), "created_at": now, "updated_at": now})
        course.id = ref.id
        logger.info("Created course %s (%s) for user %s", course.id, course.code, uid)
        return course

    def update_course(
        self,
        uid: str,
        course_id: str,
        *,
        ca: Optional[Dict[str, Any]] = None,
        target_grade: Optional[str] = None,
        difficulty: Optional[int] = None,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Course:
        ref = self._courses_ref(uid).document(course_id)
        snap = ref.get()
        if not snap.exists:
            raise CourseNotFoundError(f"Course {course_id} not found.")
        course = Course.from_document(snap.id, snap.to_dict() or {})

        changes: Dict[str, Any] = {}
        if ca is not None:
            try:
                merged = {**course.ca, **ca}
                course.ca = validate_ca_scores(merged)
            except ValueError as exc:
                raise FirestoreServiceError(str(exc)) from exc
            changes["ca"] = ca_to_document(course.ca)
        if target_grade is not None:
            course.target_grade = _check_target_grade(target_grade)
            changes["targetGrade"] = course.target_grade
        if difficulty is not None:
            course.difficulty = _check_difficulty(int(difficulty))
            changes["difficulty"] = course.difficulty
        if name is not None:
            if not name.strip():
                raise FirestoreServiceError("Course name must not be empty.")
            course.name = name.strip()
            changes["name"] = course.name
        if code is not None:
            if not code.strip():
                raise FirestoreServiceError("Course code must not be empty.")
            course.code = code.strip()
            changes["code"] = course.code

        if changes:
            changes["updated_at"] = datetime.now(timezone.utc)
            ref.update(changes)
            logger.debug("Updated course %s fields: %s", course_id, ", ".join(sorted(changes)))
        return course

    def delete_course(self, uid: str, course_id: str) -> None:
        self._courses_ref(uid).document(course_id).delete()
        logger.info("Deleted course %s for user %s", course_id, uid)
