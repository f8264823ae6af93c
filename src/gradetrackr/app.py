from contextlib import asynccontextmanager
import logging
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from gradetrackr.config.settings import configure_logging, settings
from gradetrackr.core.assessment import (
    CA_MAX_MARKS,
    DEFAULT_DIFFICULTY,
    EXAM_MAX_MARKS,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    total_max_ca,
)
from gradetrackr.core.calculator import (
    ca_percentage,
    project_grades,
    total_ca,
    validate_ca_scores,
)
from gradetrackr.core.models import Course
from gradetrackr.services.advisor_service import AdvisorServiceError, GeminiAdvisorService
from gradetrackr.services.auth_service import AuthServiceError, FirebaseAuthService
from gradetrackr.services.firestore_service import (
    CourseNotFoundError,
    FirestoreService,
    FirestoreServiceError,
)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    logger.info("GradeTrackr API starting")
    yield


app = FastAPI(title="GradeTrackr API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AuthPayload(BaseModel):
    email: str
    password: str


class CoursePayload(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)


class CourseUpdatePayload(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    ca: Optional[Dict[str, Optional[Union[str, float]]]] = None
    target_grade: Optional[str] = None
    difficulty: Optional[int] = Field(default=None, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)


class ProjectionPayload(BaseModel):
    ca: Dict[str, Optional[Union[str, float]]] = Field(default_factory=dict)


def _required_uid(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing x-user-id header")
    return x_user_id


def _projection(scores: Dict) -> Dict:
    total = total_ca(scores)
    return {
        "ca": dict(scores),
        "total_ca": total,
        "total_max_ca": total_max_ca(),
        "exam_max": EXAM_MAX_MARKS,
        "ca_percentage": round(ca_percentage(scores), 2),
        "grades": [
            {
                "grade": row.grade,
                "threshold": row.threshold,
                "required_score": row.required_score,
                "achievable": row.achievable,
                "outlook": row.outlook.value,
            }
            for row in project_grades(scores)
        ],
    }


def _get_course_or_404(fs: FirestoreService, uid: str, course_id: str) -> Course:
    course = fs.get_course(uid, course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Course {course_id} not found.")
    return course


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/schema")
def assessment_schema() -> Dict:
    return {
        "ca_max_marks": CA_MAX_MARKS,
        "exam_max": EXAM_MAX_MARKS,
        "total_max_ca": total_max_ca(),
    }


@app.post("/auth/signup")
def sign_up(payload: AuthPayload) -> Dict:
    try:
        auth = FirebaseAuthService.from_settings()
        fs = FirestoreService.from_settings()
        result = auth.sign_up(payload.email, payload.password)
        fs.ensure_user_profile(result.uid, result.email)
        return {
            "uid": result.uid,
            "email": result.email,
            "id_token": result.id_token,
            "refresh_token": result.refresh_token,
        }
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


@app.post("/auth/login")
def login(payload: AuthPayload) -> Dict:
    try:
        auth = FirebaseAuthService.from_settings()
        result = auth.sign_in(payload.email, payload.password)
        return {
            "uid": result.uid,
            "email": result.email,
            "id_token": result.id_token,
            "refresh_token": result.refresh_token,
        }
    except AuthServiceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@app.get("/courses")
def list_courses(x_user_id: Optional[str] = Header(default=None)) -> List[Dict]:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        return [course.to_dict() for course in fs.list_courses(uid)]
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(payload: CoursePayload, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        course = fs.create_course(uid, **payload.model_dump())
        return course.to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.get("/courses/{course_id}")
def get_course(course_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        return _get_course_or_404(fs, uid, course_id).to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.patch("/courses/{course_id}")
def update_course(
    course_id: str,
    payload: CourseUpdatePayload,
    x_user_id: Optional[str] = Header(default=None),
) -> Dict:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        course = fs.update_course(uid, course_id, **payload.model_dump(exclude_unset=True))
        return course.to_dict()
    except CourseNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.delete("/courses/{course_id}")
def delete_course(course_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict[str, str]:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        fs.delete_course(uid, course_id)
        return {"status": "deleted"}
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.get("/courses/{course_id}/projection")
def course_projection(course_id: str, x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        course = _get_course_or_404(fs, uid, course_id)
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {
        "course_id": course.id,
        "target_grade": course.target_grade,
        **_projection(course.ca),
    }


@app.post("/projection")
def preview_projection(payload: ProjectionPayload) -> Dict:
    try:
        scores = validate_ca_scores(payload.ca)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _projection(scores)


@app.post("/analysis")
def analyze_courses(x_user_id: Optional[str] = Header(default=None)) -> Dict:
    uid = _required_uid(x_user_id)
    fs = FirestoreService.from_settings()
    try:
        courses = fs.list_courses(uid)
        advisor = GeminiAdvisorService.from_settings()
        return advisor.analyze(courses).to_dict()
    except FirestoreServiceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except AdvisorServiceError as exc:
        logger.warning("Analysis failed for user %s: %s", uid, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
